"""
Application settings file (``settings.json``).

The file holds several sections (``vmix``, ``mobile``, ...); this store only
reads and replaces the ``vmix`` section and leaves the others untouched.
Writes are atomic so a failed save never leaves a truncated file behind.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Any, Dict

from shared.logging.logger import get_logger

log = get_logger("shared.settings_store")

VMIX_SECTION = "vmix"


class SettingsStore:
    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = Lock()

    # ------------------------------------------------------------------
    # Internal load / save
    # ------------------------------------------------------------------

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            log.warning(f"Failed to read settings {self.path}, using defaults: {e}")
            return {}
        if not isinstance(data, dict):
            log.warning(f"Settings {self.path} root is not an object; using defaults")
            return {}
        return data

    def _write_atomic(self, payload: Dict[str, Any]) -> None:
        serialized = json.dumps(payload, indent=2, ensure_ascii=False)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            "w", dir=self.path.parent, delete=False, encoding="utf-8"
        ) as tmp:
            tmp.write(serialized)
            tmp.flush()
            os.fsync(tmp.fileno())
            temp_path = Path(tmp.name)

        try:
            temp_path.replace(self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def load_vmix(self) -> Dict[str, Any]:
        with self._lock:
            section = self._load().get(VMIX_SECTION)
        return section if isinstance(section, dict) else {}

    def save_vmix(self, blob: Dict[str, Any]) -> None:
        with self._lock:
            settings = self._load()
            settings[VMIX_SECTION] = blob
            self._write_atomic(settings)
        log.debug(f"Saved vMix settings to {self.path}")
