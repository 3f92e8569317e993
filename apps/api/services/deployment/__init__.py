from __future__ import annotations

from .service import DeploymentBusyError, DeploymentService, DeployRequestMeta

__all__ = ["DeploymentBusyError", "DeploymentService", "DeployRequestMeta"]
