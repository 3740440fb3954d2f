"""
Migration store: writes revision scripts into an Alembic versions directory.

Keeps two invariants across one run:

- filename timestamps strictly increase, so scripts sort in creation order;
- every script's ``down_revision`` is the head left by the previous one.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Union

from .synthesizer import MigrationArtifact

logger = logging.getLogger(__name__)

_REVISION = re.compile(r'^revision\s*(?::\s*str\s*)?=\s*["\']([^"\']+)["\']', re.MULTILINE)
_DOWN_REVISION = re.compile(
    r'^down_revision\s*(?::[^=]+)?=\s*(None|["\']([^"\']+)["\'])', re.MULTILINE
)
_TIMESTAMP_PREFIX = re.compile(r"^(\d{14})_")


class MigrationStore:
    """Append-only writer for generated revision scripts."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._last_timestamp: Optional[datetime] = None
        self._head: Optional[str] = None

    def scripts(self) -> List[Path]:
        if not self.path.is_dir():
            return []
        return sorted(p for p in self.path.glob("*.py") if not p.name.startswith("__"))

    def _latest_prefix(self) -> Optional[datetime]:
        latest = None
        for script in self.scripts():
            match = _TIMESTAMP_PREFIX.match(script.name)
            if match:
                stamp = datetime.strptime(match.group(1), "%Y%m%d%H%M%S").replace(tzinfo=timezone.utc)
                latest = stamp if latest is None or stamp > latest else latest
        return latest

    def next_timestamp(self, now: Optional[datetime] = None) -> datetime:
        """A second-resolution timestamp later than any used so far."""
        stamp = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        floor = self._last_timestamp or self._latest_prefix()
        if floor is not None and stamp <= floor:
            stamp = floor + timedelta(seconds=1)
        self._last_timestamp = stamp
        return stamp

    def head(self) -> Optional[str]:
        """Revision id that the next script should revise."""
        if self._head is not None:
            return self._head

        revisions: Dict[str, Path] = {}
        referenced = set()
        for script in self.scripts():
            text = script.read_text(encoding="utf-8")
            match = _REVISION.search(text)
            if not match:
                continue
            revisions[match.group(1)] = script
            down = _DOWN_REVISION.search(text)
            if down and down.group(2):
                referenced.add(down.group(2))

        heads = [rev for rev in revisions if rev not in referenced]
        if not heads:
            return None
        if len(heads) > 1:
            logger.warning(f"Multiple migration heads found ({', '.join(sorted(heads))}); chaining to the newest file")
        return max(heads, key=lambda rev: revisions[rev].name)

    def write(self, artifact: MigrationArtifact) -> Path:
        self.path.mkdir(parents=True, exist_ok=True)
        target = self.path / artifact.filename
        if target.exists():
            raise FileExistsError(f"Migration file already exists: {target}")
        target.write_text(artifact.content, encoding="utf-8")
        self._head = artifact.revision
        logger.info(f"Wrote migration {target}")
        return target
