"""
Watch the match JSON file written by the scoring app.

The watcher polls the file's content hash; a changed hash triggers a reload
and the ``on_change`` callback with the parsed match. Malformed or partially
written files are skipped until the next valid write.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional

from shared.logging.logger import get_logger
from shared.utils.hashing import file_digest

log = get_logger("core.match_watcher")

MatchCallback = Callable[[Dict[str, Any]], Awaitable[Any]]


def load_match(path: Path) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        log.warning(f"Could not read match file {path}: {e}")
        return None
    if not isinstance(data, dict):
        log.warning(f"Match file {path} root is not an object; ignoring")
        return None
    return data


class MatchFileWatcher:
    def __init__(
        self,
        path: Path | str,
        on_change: MatchCallback,
        *,
        interval_seconds: float = 1.0,
    ) -> None:
        self.path = Path(path)
        self.on_change = on_change
        self.interval_seconds = max(0.2, float(interval_seconds or 1.0))
        self._last_hash: Optional[str] = None

    async def check(self) -> bool:
        """Run one poll; True when a changed match was delivered."""
        digest = file_digest(self.path)
        if digest is None or digest == self._last_hash:
            return False

        match = load_match(self.path)
        if match is None:
            return False

        self._last_hash = digest
        log.debug(f"Match file {self.path} changed")
        await self.on_change(match)
        return True

    async def run(self, stop_event: asyncio.Event) -> None:
        log.info(f"Watching match file {self.path}")
        while not stop_event.is_set():
            await self.check()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        log.info(f"Stopped watching {self.path}")
