from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional


PipelineStatus = Literal[
    "succeeded",
    "failed",
    "timed_out",
]


@dataclass(frozen=True)
class PipelineStep:
    command: str
    cwd: Path


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of one pipeline execution.

    failing_step_index is the 0-based position of the step that failed or
    was running when the timeout hit. It equals len(steps) when every step
    passed but the post-reload health check did not.
    """

    status: PipelineStatus
    stdout: str = ""
    stderr: str = ""
    failing_step_index: Optional[int] = None
    error_message: Optional[str] = None
    exit_code: Optional[int] = None

    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == "succeeded"

    @property
    def timed_out(self) -> bool:
        return self.status == "timed_out"
