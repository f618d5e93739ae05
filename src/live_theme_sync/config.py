from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import jsonschema

SCHEMA_PATH = Path(__file__).resolve().parent / "schemas" / "config.schema.json"
STATE_DIR = Path.home() / ".live-theme-sync"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SyncConfig:
    url: str = "https://live.bilibili.com/"
    match_pattern: str = "https://live.bilibili.com/*"
    trigger_selector: str = ".icon-lab"
    switch_selector: str = ".bl-switch"
    theme_attribute: str = "lab-style"
    dark_marker: str = "dark"
    switch_index: int = 1
    min_switches: int = 2
    cdp_url: str = "http://127.0.0.1:9222"
    launch: bool = False
    user_data_dir: str = str(STATE_DIR / "profile")
    headless: bool = False
    wait_timeout_seconds: Optional[float] = None
    serialize_sequences: bool = False
    poll_interval_ms: int = 50
    lock_file: str = str(STATE_DIR / "session.lock")

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


ENV_KEYS: Dict[str, str] = {
    "LIVE_THEME_SYNC_URL": "url",
    "LIVE_THEME_SYNC_MATCH": "match_pattern",
    "LIVE_THEME_SYNC_CDP_URL": "cdp_url",
    "LIVE_THEME_SYNC_LAUNCH": "launch",
    "LIVE_THEME_SYNC_HEADLESS": "headless",
    "LIVE_THEME_SYNC_USER_DATA_DIR": "user_data_dir",
    "LIVE_THEME_SYNC_WAIT_TIMEOUT": "wait_timeout_seconds",
    "LIVE_THEME_SYNC_SERIALIZE": "serialize_sequences",
    "LIVE_THEME_SYNC_LOCK_FILE": "lock_file",
}


def _parse_bool(key: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValueError(f"{key} must be a boolean (got {raw!r})")


def _parse_timeout(key: str, raw: str) -> Optional[float]:
    value = raw.strip().lower()
    if value in {"", "none", "off"}:
        return None
    try:
        seconds = float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number of seconds (got {raw!r})") from None
    if seconds <= 0:
        raise ValueError(f"{key} must be positive (got {raw!r})")
    return seconds


def _from_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, field_name in ENV_KEYS.items():
        raw = env.get(key)
        if raw is None or not raw.strip():
            continue
        if field_name in {"launch", "headless", "serialize_sequences"}:
            values[field_name] = _parse_bool(key, raw)
        elif field_name == "wait_timeout_seconds":
            values[field_name] = _parse_timeout(key, raw)
        else:
            values[field_name] = raw.strip()
    return values


def load_config_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    jsonschema.validate(data, schema)
    return data


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> SyncConfig:
    """Defaults, then the JSON file, then environment, then ``overrides``.

    Overrides set to ``None`` are ignored, so unset CLI flags fall through.
    """
    config = SyncConfig()
    if path is not None:
        config = replace(config, **load_config_file(Path(path)))
    config = replace(config, **_from_env(os.environ if env is None else env))

    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ValueError(f"unknown config keys: {', '.join(unknown)}")
    explicit = {k: v for k, v in overrides.items() if v is not None}
    config = replace(config, **explicit)
    if config.wait_timeout_seconds is not None and config.wait_timeout_seconds <= 0:
        raise ValueError(f"wait_timeout_seconds must be positive (got {config.wait_timeout_seconds})")
    return config
