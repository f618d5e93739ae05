"""Attach to (or launch) Chromium and pick the live room tab to sync."""
from __future__ import annotations

import fnmatch
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

import requests

from .config import SyncConfig
from .page_ready import wait_ready

logger = logging.getLogger(__name__)


def find_page(pages: Iterable, match_pattern: str):
    for page in pages:
        if fnmatch.fnmatch(page.url, match_pattern):
            return page
    return None


def _adopt_or_open(context, pages: Iterable, config: SyncConfig):
    page = find_page(pages, config.match_pattern)
    if page is not None:
        logger.info("adopting open tab %s", page.url)
        return page
    logger.info("no tab matches %s; opening %s", config.match_pattern, config.url)
    page = context.new_page()
    page.goto(config.url, wait_until="domcontentloaded")
    wait_ready(page)
    return page


@contextmanager
def open_page(config: SyncConfig, playwright_factory=None) -> Iterator:
    """Yield the page to sync; the browser connection lives for the ``with`` block.

    Attaches over CDP by default. With ``config.launch`` a persistent context
    is launched without color-scheme emulation, so the page's
    ``prefers-color-scheme`` follows the OS.
    """
    if playwright_factory is None:
        from playwright.sync_api import sync_playwright

        playwright_factory = sync_playwright

    with playwright_factory() as p:
        if config.launch:
            user_data_dir = Path(config.user_data_dir).expanduser()
            user_data_dir.mkdir(parents=True, exist_ok=True)
            context = p.chromium.launch_persistent_context(
                str(user_data_dir),
                headless=config.headless,
                color_scheme="no-override",
            )
            try:
                yield _adopt_or_open(context, context.pages, config)
            finally:
                context.close()
            return

        browser = p.chromium.connect_over_cdp(config.cdp_url)
        try:
            contexts = browser.contexts
            if not contexts:
                raise RuntimeError(f"no browser context available at {config.cdp_url}")
            pages = [pg for ctx in contexts for pg in ctx.pages]
            yield _adopt_or_open(contexts[0], pages, config)
        finally:
            browser.close()


def cdp_version(cdp_url: str, timeout: float = 3.0) -> Optional[dict]:
    try:
        resp = requests.get(cdp_url.rstrip("/") + "/json/version", timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except Exception as exc:  # noqa: BLE001
        logger.debug("CDP endpoint %s unreachable: %s", cdp_url, exc)
        return None
