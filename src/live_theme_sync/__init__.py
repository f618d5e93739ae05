"""Keep a live room page's theme in step with the system color scheme."""

__all__ = [
    "browser",
    "cli",
    "config",
    "dom",
    "loop",
    "reconciler",
    "sequencer",
    "session",
    "session_lock",
    "system_theme",
    "watcher",
]
