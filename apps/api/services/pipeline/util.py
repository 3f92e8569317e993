from __future__ import annotations

import datetime as _dt
import time
from pathlib import Path


def utc_iso(ts: float | None = None) -> str:
    if ts is None:
        ts = time.time()
    dt = _dt.datetime.fromtimestamp(ts, tz=_dt.timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def atomic_write_text(path: Path, text: str) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)


def decode_output(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
