from __future__ import annotations

import os
import shlex
import signal
import subprocess
import threading
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence

from .types import PipelineStep
from .util import atomic_write_text

_SCRIPT_HEADER = """#!/usr/bin/env bash
set -e

export PATH="/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin:${PATH}"
"""


def render_pipeline_script(steps: Sequence[PipelineStep], marker_path: Path) -> str:
    """
    Render the whole pipeline as one bash script.

    Every step runs in its own subshell after changing into its working
    directory. The step index is written to marker_path before the step
    starts, so after a non-zero exit the marker names the failing step.
    """
    marker = shlex.quote(str(marker_path))
    parts = [_SCRIPT_HEADER]
    for idx, step in enumerate(steps):
        parts.append(
            f"\nprintf '%s\\n' {idx} > {marker}\n"
            "(\n"
            f"cd -- {shlex.quote(str(step.cwd))}\n"
            f"{step.command}\n"
            ")\n"
        )
    return "".join(parts)


def write_pipeline_script(
    path: Path, steps: Sequence[PipelineStep], marker_path: Path
) -> None:
    atomic_write_text(path, render_pipeline_script(steps, marker_path))
    path.chmod(0o700)


def read_step_marker(marker_path: Path) -> Optional[int]:
    try:
        raw = marker_path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def start_process(*, script_path: Path, cwd: Path) -> subprocess.Popen:
    """
    Start the pipeline script in its own process group so a timeout can kill
    every descendant at once.
    """
    return subprocess.Popen(
        ["/bin/bash", str(script_path)],
        cwd=str(cwd),
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        start_new_session=True,  # new process group/session
    )


def start_output_reader(stream: Optional[BinaryIO], sink: List[bytes]) -> threading.Thread:
    """
    Drain one pipe of the pipeline process into sink on a daemon thread.

    Reading ends at EOF, which only comes once every holder of the pipe has
    exited. A background child started by a step may keep it open long after
    bash returns, so callers wait on the process, not on this thread.
    """

    def _reader() -> None:
        if stream is None:
            return
        try:
            while True:
                chunk = os.read(stream.fileno(), 4096)
                if not chunk:
                    break
                sink.append(chunk)
        finally:
            try:
                stream.close()
            except OSError:
                pass

    reader = threading.Thread(target=_reader, daemon=True)
    reader.start()
    return reader


def terminate_process_group(proc: subprocess.Popen, grace_seconds: float) -> None:
    """
    SIGTERM the whole group, then SIGKILL whatever is left after the grace
    period.
    """
    pid = proc.pid
    if not isinstance(pid, int) or pid <= 0:
        return
    try:
        os.killpg(pid, signal.SIGTERM)
    except ProcessLookupError:
        return

    try:
        proc.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        pass

    try:
        os.killpg(pid, signal.SIGKILL)
    except ProcessLookupError:
        # Group already gone
        return
