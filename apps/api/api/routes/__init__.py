from fastapi import APIRouter

from .deploy import router as deploy_router

router = APIRouter()
router.include_router(deploy_router)
