from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import List, Optional, Tuple

from .config import PipelineConfig
from .healthcheck import wait_until_healthy
from .runner import (
    read_step_marker,
    start_output_reader,
    start_process,
    terminate_process_group,
    write_pipeline_script,
)
from .types import PipelineResult, PipelineStatus
from .util import decode_output, utc_iso

LOGGER = logging.getLogger(__name__)

_READER_JOIN_SECONDS = 1.0


class PipelineExecutor:
    """
    Runs the configured step list as one fail-fast unit.

    Every call executes the identical pipeline. Problems never escape as
    exceptions; they come back as a failed or timed_out PipelineResult.
    Calls must not overlap; DeploymentService owns that guarantee.
    """

    def __init__(self, config: PipelineConfig) -> None:
        self._config = config

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def run(self) -> PipelineResult:
        started = time.monotonic()
        started_at = utc_iso()
        steps = self._config.steps

        if not steps:
            LOGGER.warning("pipeline has no steps; nothing to do")
            return self._result("succeeded", started, started_at)

        LOGGER.info(
            "starting pipeline: %d steps in %s (timeout %.0fs)",
            len(steps),
            self._config.project_path,
            self._config.timeout_seconds,
        )

        with TemporaryDirectory(prefix="deploy-pipeline-") as tmp:
            tmp_path = Path(tmp)
            marker_path = tmp_path / "step"
            script_path = tmp_path / "pipeline.sh"
            write_pipeline_script(script_path, steps, marker_path)

            try:
                proc = start_process(script_path=script_path, cwd=tmp_path)
            except OSError as exc:
                LOGGER.error("failed to start pipeline: %s", exc)
                return self._result(
                    "failed",
                    started,
                    started_at,
                    error_message=f"failed to start pipeline: {exc}",
                )

            out, err, timed_out = self._communicate(proc)
            step_index = read_step_marker(marker_path)

        stdout = decode_output(out)
        stderr = decode_output(err)
        rc = proc.returncode

        command = self._command_of(step_index)

        if timed_out:
            message = f"pipeline timed out after {self._config.timeout_seconds:g}s"
            if command is not None:
                message += f" during step {step_index}: {command}"
            LOGGER.error(message)
            return self._result(
                "timed_out",
                started,
                started_at,
                stdout=stdout,
                stderr=stderr,
                failing_step_index=step_index,
                error_message=message,
                exit_code=rc,
            )

        if rc != 0:
            if command is None:
                message = f"pipeline exited with code {rc}"
            else:
                message = f"step {step_index} failed with exit code {rc}: {command}"
            LOGGER.error(message)
            return self._result(
                "failed",
                started,
                started_at,
                stdout=stdout,
                stderr=stderr,
                failing_step_index=step_index,
                error_message=message,
                exit_code=rc,
            )

        if self._config.healthcheck_url:
            deadline = started + self._config.timeout_seconds
            healthy, detail = wait_until_healthy(
                self._config.healthcheck_url,
                attempts=self._config.healthcheck_attempts,
                delay_seconds=self._config.healthcheck_delay_seconds,
                deadline=deadline,
            )
            if not healthy:
                status: PipelineStatus = "failed"
                message = f"health check failed: {detail}"
                if time.monotonic() >= deadline:
                    status = "timed_out"
                    message = (
                        f"pipeline timed out after {self._config.timeout_seconds:g}s"
                        f" during health check: {detail}"
                    )
                LOGGER.error(message)
                return self._result(
                    status,
                    started,
                    started_at,
                    stdout=stdout,
                    stderr=stderr,
                    failing_step_index=len(steps),
                    error_message=message,
                    exit_code=rc,
                )

        LOGGER.info("pipeline finished in %.1fs", time.monotonic() - started)
        return self._result(
            "succeeded",
            started,
            started_at,
            stdout=stdout,
            stderr=stderr,
            exit_code=rc,
        )

    def _communicate(self, proc: subprocess.Popen) -> Tuple[bytes, bytes, bool]:
        out: List[bytes] = []
        err: List[bytes] = []
        readers = [
            start_output_reader(proc.stdout, out),
            start_output_reader(proc.stderr, err),
        ]

        timed_out = False
        try:
            proc.wait(timeout=self._config.timeout_seconds)
        except subprocess.TimeoutExpired:
            LOGGER.warning("pipeline exceeded timeout; terminating process group")
            timed_out = True
            terminate_process_group(proc, self._config.kill_grace_seconds)
            proc.wait()

        # A background child launched by a step can keep the pipes open
        # after bash exits; take what has arrived and let the readers finish
        # on their own.
        join_until = time.monotonic() + _READER_JOIN_SECONDS
        for reader in readers:
            reader.join(timeout=max(join_until - time.monotonic(), 0.0))
        return b"".join(out), b"".join(err), timed_out

    def _command_of(self, step_index: Optional[int]) -> Optional[str]:
        steps = self._config.steps
        if step_index is None or not 0 <= step_index < len(steps):
            return None
        return steps[step_index].command

    @staticmethod
    def _result(
        status: PipelineStatus,
        started: float,
        started_at: str,
        **fields,
    ) -> PipelineResult:
        return PipelineResult(
            status=status,
            started_at=started_at,
            finished_at=utc_iso(),
            duration_seconds=time.monotonic() - started,
            **fields,
        )
