from __future__ import annotations

from typing import TYPE_CHECKING

from .types import PipelineResult, PipelineStep

if TYPE_CHECKING:
    from .executor import PipelineExecutor

__all__ = ["PipelineExecutor", "PipelineResult", "PipelineStep"]


def __getattr__(name: str):
    if name == "PipelineExecutor":
        from .executor import PipelineExecutor

        return PipelineExecutor
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
