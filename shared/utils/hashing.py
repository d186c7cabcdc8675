"""Content hashing for change detection on watched files."""
from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Optional

from shared.logging.logger import get_logger

log = get_logger("shared.utils.hashing")


def file_digest(path: Path) -> Optional[str]:
    """SHA-256 of a file's bytes, or ``None`` when it is missing or unreadable."""
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as exc:
        log.warning(f"Failed to hash {path}: {exc}")
        return None
    return hashlib.sha256(data).hexdigest()
