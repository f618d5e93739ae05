from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        # Process exists but is owned by another user.
        return True


@dataclass
class SessionLock:
    """PID lock file keeping a single sync daemon per browser.

    Two daemons on one tab would both see the mismatch and both click, so the
    second one waits (up to ``timeout_seconds``) and then gives up.
    """

    lock_file: Path
    timeout_seconds: float = 0
    retry_seconds: float = 1
    owner_pid: int = field(default_factory=os.getpid)
    target: str = ""

    def acquire(self) -> None:
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)
        deadline = time.monotonic() + max(0, self.timeout_seconds)

        while not self._try_create():
            if self.holder() is None:
                # Owner exited without releasing; take the lock over.
                self.lock_file.unlink(missing_ok=True)
                continue
            if time.monotonic() >= deadline:
                raise TimeoutError(
                    f"another sync session holds {self.lock_file} (pid={self._read().get('pid')})"
                )
            time.sleep(max(0.1, self.retry_seconds))

    def _try_create(self) -> bool:
        try:
            fd = os.open(str(self.lock_file), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
        except FileExistsError:
            return False
        payload = {
            "pid": self.owner_pid,
            "target": self.target,
            "start_time": datetime.now(timezone.utc).isoformat(),
        }
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f)
        return True

    def release(self) -> None:
        if self._owner_pid() == self.owner_pid:
            self.lock_file.unlink(missing_ok=True)

    def __enter__(self) -> "SessionLock":
        self.acquire()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.release()

    def holder(self) -> Optional[Dict[str, Any]]:
        """Lock contents if a live process holds it, else None."""
        pid = self._owner_pid()
        if pid is None or not _pid_alive(pid):
            return None
        return self._read()

    def _read(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.lock_file.read_text())
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}

    def _owner_pid(self) -> Optional[int]:
        try:
            return int(self._read()["pid"])
        except (KeyError, TypeError, ValueError):
            return None
