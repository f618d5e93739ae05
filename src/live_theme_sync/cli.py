from __future__ import annotations

import argparse
import importlib.util
import json
import logging
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import jsonschema

from .browser import cdp_version, open_page
from .config import SyncConfig, load_config
from .dom import PlaywrightDocument
from .loop import EventLoop
from .session import ThemeSyncSession
from .session_lock import SessionLock
from .system_theme import MediaQuerySignal

logger = logging.getLogger("live_theme_sync")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def pretty_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, sort_keys=True)


def _positive_seconds(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number of seconds: {raw!r}") from None
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive (got {raw!r})")
    return value


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Path to a JSON config file")
    common.add_argument("--cdp-url", help="Chrome DevTools endpoint to attach to")
    common.add_argument("--url", help="Room URL to open when no tab matches")
    common.add_argument(
        "--launch",
        action="store_true",
        default=None,
        help="Launch a persistent Chromium profile instead of attaching over CDP",
    )
    common.add_argument("--headless", action="store_true", default=None, help="Headless launch")
    common.add_argument(
        "--timeout",
        type=_positive_seconds,
        help="Give up waiting for menu elements after this many seconds (default: wait forever)",
    )
    common.add_argument(
        "--serialize",
        action="store_true",
        default=None,
        help="Skip a correction while a previous one is still running",
    )
    common.add_argument("--log-level", default="INFO")
    common.add_argument("--log-file", help="Also append log records to this file")

    parser = argparse.ArgumentParser(
        description="Keep a live room page's theme in step with the system color scheme"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", parents=[common], help="Sync until the tab closes or Ctrl-C")

    p_check = sub.add_parser("check", parents=[common], help="Run a single reconciliation pass")
    p_check.add_argument(
        "--settle-seconds",
        type=float,
        default=10.0,
        help="How long to wait for the pass to finish",
    )

    sub.add_parser("status", parents=[common], help="Print system and page theme state")

    p_doctor = sub.add_parser("doctor", parents=[common], help="Run local environment preflight checks")
    p_doctor.add_argument(
        "--json",
        action="store_true",
        help="Emit machine-readable JSON output",
    )

    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace, env: Optional[Mapping[str, str]] = None) -> SyncConfig:
    return load_config(
        Path(args.config) if args.config else None,
        env=env,
        cdp_url=args.cdp_url,
        url=args.url,
        launch=args.launch,
        headless=args.headless,
        wait_timeout_seconds=args.timeout,
        serialize_sequences=args.serialize,
    )


def _configure_logging(level: str, log_file: Optional[str]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, handlers=handlers, force=True)


def _lock_for(config: SyncConfig) -> SessionLock:
    target = config.user_data_dir if config.launch else config.cdp_url
    return SessionLock(lock_file=Path(config.lock_file).expanduser(), target=target)


def build_session(page, config: SyncConfig) -> ThemeSyncSession:
    loop = EventLoop()
    document = PlaywrightDocument(page, loop)
    document.install()
    return ThemeSyncSession(document, MediaQuerySignal(document), config, loop)


def _run(config: SyncConfig) -> Dict[str, Any]:
    with _lock_for(config), open_page(config) as page:
        session = build_session(page, config)
        logger.info("syncing %s", page.url)
        try:
            session.run(page.wait_for_timeout, keep_running=lambda: not page.is_closed())
        except KeyboardInterrupt:
            logger.info("interrupted; stopping")
        finally:
            session.close()
        return {"ok": True, "passes": dict(Counter(session.outcomes))}


def _check(config: SyncConfig, settle_seconds: float) -> Dict[str, Any]:
    with _lock_for(config), open_page(config) as page:
        session = build_session(page, config)
        system_dark = session.system_signal.is_dark()
        page_dark_before = session.reconciler.page_is_dark()
        outcome = session.run_once(page.wait_for_timeout, settle_seconds=settle_seconds)
        session.close()
        return {
            "ok": outcome is not None,
            "outcome": outcome,
            "system_dark": system_dark,
            "page_dark_before": page_dark_before,
            "page_dark_after": session.reconciler.page_is_dark(),
            "url": page.url,
        }


def _status(config: SyncConfig) -> Dict[str, Any]:
    with open_page(config) as page:
        document = PlaywrightDocument(page, EventLoop())
        session = ThemeSyncSession(document, MediaQuerySignal(document), config, document.loop)
        system_dark = session.system_signal.is_dark()
        page_dark = session.reconciler.page_is_dark()
        return {
            "ok": True,
            "url": page.url,
            "system_dark": system_dark,
            "page_dark": page_dark,
            "in_sync": system_dark == page_dark,
            "trigger_present": document.count(config.trigger_selector) > 0,
            "switch_count": document.count(config.switch_selector),
        }


def _doctor(config: SyncConfig) -> Dict[str, Any]:
    checks: Dict[str, Dict[str, Any]] = {}
    checks["playwright"] = {
        "ok": importlib.util.find_spec("playwright") is not None,
        "details": "pip install playwright && playwright install chromium",
    }
    if config.launch:
        checks["browser"] = {
            "ok": True,
            "details": f"launch mode, profile {Path(config.user_data_dir).expanduser()}",
        }
    else:
        version = cdp_version(config.cdp_url)
        checks["browser"] = {
            "ok": version is not None,
            "details": (version or {}).get("Browser", f"no CDP endpoint at {config.cdp_url}"),
        }
    holder = _lock_for(config).holder()
    checks["session_lock"] = {
        "ok": holder is None,
        "details": f"held by pid {holder.get('pid')}" if holder else "free",
    }

    overall_ok = all(item["ok"] for item in checks.values())
    return {"ok": overall_ok, "config": config.as_dict(), "checks": checks}


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    _configure_logging(args.log_level, args.log_file)

    try:
        config = config_from_args(args)
    except (ValueError, OSError, jsonschema.ValidationError) as exc:
        message = exc.message if isinstance(exc, jsonschema.ValidationError) else str(exc)
        print(pretty_json({"ok": False, "error": f"invalid configuration: {message}"}))
        raise SystemExit(2)

    if args.command == "doctor":
        result = _doctor(config)
        if args.json:
            print(pretty_json(result))
            return
        for name, item in result["checks"].items():
            print(f"[{'ok' if item['ok'] else 'FAIL'}] {name}: {item['details']}")
        return

    try:
        if args.command == "run":
            result = _run(config)
        elif args.command == "check":
            result = _check(config, args.settle_seconds)
        else:
            result = _status(config)
    except TimeoutError as exc:
        print(pretty_json({"ok": False, "error": str(exc)}))
        raise SystemExit(3)
    except Exception as exc:  # noqa: BLE001
        logger.debug("command failed", exc_info=True)
        print(pretty_json({"ok": False, "error": str(exc)}))
        raise SystemExit(1)

    print(pretty_json(result))
    if not result.get("ok"):
        raise SystemExit(1)


if __name__ == "__main__":
    main(sys.argv[1:])
