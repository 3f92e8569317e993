from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_MESSAGE = "Deployment completed successfully"


class DeployTrigger(BaseModel):
    """
    Optional request body sent by the trigger client.

    Informational only: the pipeline never depends on it.
    """

    model_config = ConfigDict(extra="ignore")

    trigger: Optional[str] = Field(default=None, description="Trigger marker")
    timestamp: Optional[str] = Field(
        default=None, description="Client-side ISO timestamp"
    )

    @field_validator("trigger", "timestamp")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        s = v.strip()
        return s or None


class DeploySuccessOut(BaseModel):
    success: Literal[True] = True
    message: str = SUCCESS_MESSAGE
    output: str = ""


class DeployFailureOut(BaseModel):
    success: Literal[False] = False
    error: str
    stderr: str = ""
