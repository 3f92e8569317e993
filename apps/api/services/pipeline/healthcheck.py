from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Tuple

import httpx

LOGGER = logging.getLogger(__name__)


def wait_until_healthy(
    url: str,
    *,
    attempts: int,
    delay_seconds: float,
    timeout_seconds: float = 5.0,
    deadline: Optional[float] = None,
    client: Optional[httpx.Client] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Tuple[bool, str]:
    """
    Poll url until it answers with a 2xx status.

    deadline is a clock() value; no request or pause is allowed to run past
    it, and polling stops once it is reached.

    Returns (healthy, detail) where detail describes the last observation.
    """
    own_client = client is None
    http = client or httpx.Client(timeout=timeout_seconds, follow_redirects=True)
    detail = "no attempt made"

    def _remaining() -> Optional[float]:
        if deadline is None:
            return None
        return max(deadline - clock(), 0.0)

    try:
        for attempt in range(1, attempts + 1):
            remaining = _remaining()
            if remaining is not None and remaining <= 0:
                LOGGER.warning(
                    "health check out of time after %d/%d attempts",
                    attempt - 1,
                    attempts,
                )
                break

            request_timeout = timeout_seconds
            if remaining is not None:
                request_timeout = min(timeout_seconds, remaining)

            try:
                resp = http.get(url, timeout=request_timeout)
            except httpx.HTTPError as exc:
                detail = f"{url} unreachable: {exc}"
            else:
                if 200 <= resp.status_code < 300:
                    LOGGER.info("health check passed on attempt %d: %s", attempt, url)
                    return True, f"{url} answered {resp.status_code}"
                detail = f"{url} answered {resp.status_code}"

            LOGGER.warning(
                "health check attempt %d/%d failed: %s", attempt, attempts, detail
            )
            if attempt < attempts:
                pause = max(delay_seconds, 0.0)
                remaining = _remaining()
                if remaining is not None:
                    pause = min(pause, remaining)
                if pause > 0:
                    sleep(pause)
    finally:
        if own_client:
            http.close()

    return False, detail
