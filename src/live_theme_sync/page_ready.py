"""Page readiness for the synced tab.

Only waits on load states the browser reports; sync itself never sleeps for
a fixed delay, it watches the DOM.
"""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def wait_ready(page, timeout_ms: int = 15000) -> str:
    """Wait for domcontentloaded, then briefly for load. Returns the state reached.

    Live rooms keep streaming connections open, so networkidle is never
    awaited.
    """
    try:
        page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
    except Exception as exc:  # noqa: BLE001
        logger.warning("page not ready after %dms: %s", timeout_ms, exc)
        return "loading"
    try:
        page.wait_for_load_state("load", timeout=timeout_ms)
    except Exception:  # noqa: BLE001
        return "interactive"
    return "complete"
