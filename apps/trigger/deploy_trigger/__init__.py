from __future__ import annotations

from .client import TriggerOutcome, interpret_response, report, send_trigger
from .config import TriggerConfig, load_trigger_config

__all__ = [
    "TriggerConfig",
    "TriggerOutcome",
    "interpret_response",
    "load_trigger_config",
    "report",
    "send_trigger",
]
