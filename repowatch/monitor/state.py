"""Per-branch monitor state and its JSON persistence.

The persisted form is a flat JSON object keyed by branch name::

    {
      "feature-x": {
        "last_seen_sha": "3f2c...",
        "last_notified_label": "ci_green",
        "merged": false
      }
    }

A missing or unreadable file loads as empty state. Individual malformed
entries are dropped with a warning.
"""

import json
import logging
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path

from .models import MonitoredState

logger = logging.getLogger(__name__)


class MonitorState:
    """In-memory table of ``MonitoredState`` keyed by branch name.

    Owned by the reconciliation engine; nothing else mutates it.
    """

    def __init__(self, entries: dict[str, MonitoredState] | None = None):
        self._entries: dict[str, MonitoredState] = dict(entries or {})

    def __contains__(self, branch: object) -> bool:
        return branch in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, branch: str) -> MonitoredState | None:
        return self._entries.get(branch)

    def put(self, branch: str, entry: MonitoredState) -> None:
        self._entries[branch] = entry

    def retain(self, branches: Iterable[str]) -> list[str]:
        """Drop entries for branches not in ``branches``.

        Returns:
            Names of the removed branches
        """
        keep = set(branches)
        removed = [name for name in self._entries if name not in keep]
        for name in removed:
            del self._entries[name]
        return removed

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {name: entry.to_dict() for name, entry in sorted(self._entries.items())}


class StateStore:
    """Loads and saves ``MonitorState`` as a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> MonitorState:
        """Load state; missing or unparsable files give empty state."""
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug(f"No state file at {self.path}, starting fresh")
            return MonitorState()
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable state file {self.path}: {e}")
            return MonitorState()

        if not isinstance(raw, dict):
            logger.warning(f"Ignoring state file {self.path}: not a JSON object")
            return MonitorState()

        entries: dict[str, MonitoredState] = {}
        for branch, record in raw.items():
            try:
                if not isinstance(record, dict):
                    raise TypeError("entry is not an object")
                entries[branch] = MonitoredState.from_dict(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Dropping malformed state entry '{branch}': {e!r}")

        logger.info(f"Loaded state for {len(entries)} branches from {self.path}")
        return MonitorState(entries)

    def save(self, state: MonitorState) -> None:
        """Atomically write ``state``.

        Raises:
            OSError: If the file cannot be written
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(state.to_dict(), indent=2)

        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
