"""Atomic JSON file I/O for the ledger documents.

Every write goes through a ``.tmp`` sibling and :func:`os.replace`, so a
reader never sees a half-written document.  Reads are strict and write
failures raise :class:`PersistenceError`: a pass that could not be stored
must not report success.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from tradeledger.core.exceptions import DataCorruptionError, PersistenceError

logger = logging.getLogger(__name__)


class FileStore:
    """Centralised JSON file I/O.  Errors are always logged."""

    # -- reads ------------------------------------------------------------

    @staticmethod
    def load_json(path: Path, default: Any = None) -> Any:
        """Read a JSON document that must not be silently discarded.

        A missing file returns *default*.  An unreadable or unparseable file
        raises :class:`DataCorruptionError` so the caller never overwrites
        records it failed to load.
        """
        if not path.exists():
            return default
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DataCorruptionError(f"cannot read {path}: {exc}") from exc
        if not raw.strip():
            return default
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise DataCorruptionError(f"corrupt JSON in {path}: {exc}") from exc
        return data if data is not None else default

    # -- writes -----------------------------------------------------------

    @staticmethod
    def write_json(path: Path, data: Any) -> None:
        """Atomic JSON write with ``indent=2``."""
        FileStore.write_json_batch({path: data})

    @staticmethod
    def write_json_batch(documents: Mapping[Path, Any]) -> None:
        """Write several JSON documents as one unit.

        Every document is serialised and staged to its ``.tmp`` sibling
        first; only when all stages succeed are they renamed into place.
        A failure while staging removes the temp files and leaves every
        target untouched.  A failure while renaming puts back the previous
        content of the targets already replaced.
        """
        staged: list[tuple[Path, Path]] = []
        previous: dict[Path, bytes | None] = {}
        replaced: list[Path] = []
        try:
            for path, data in documents.items():
                tmp = path.with_suffix(path.suffix + ".tmp")
                path.parent.mkdir(parents=True, exist_ok=True)
                payload = json.dumps(data, indent=2, allow_nan=False) + "\n"
                tmp.write_text(payload, encoding="utf-8")
                staged.append((tmp, path))
            for _, path in staged:
                previous[path] = path.read_bytes() if path.exists() else None
            for tmp, path in staged:
                os.replace(tmp, path)
                replaced.append(path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("write_json_batch(%s) failed: %s", list(documents), exc)
            for tmp, _ in staged:
                with contextlib.suppress(OSError):
                    tmp.unlink(missing_ok=True)
            FileStore._restore(replaced, previous)
            raise PersistenceError(f"could not persist ledger documents: {exc}") from exc

    @staticmethod
    def _restore(paths: list[Path], previous: Mapping[Path, bytes | None]) -> None:
        for path in paths:
            content = previous.get(path)
            try:
                if content is None:
                    path.unlink(missing_ok=True)
                else:
                    path.write_bytes(content)
            except OSError as exc:
                logger.error("Could not restore %s after a failed batch: %s", path, exc)

    @staticmethod
    def backup_json(path: Path, suffix: str) -> Path | None:
        """Copy *path* to ``<stem>_backup_<suffix><ext>`` beside it.

        Returns the backup path, or ``None`` if there was nothing to copy.
        """
        if not path.exists():
            return None
        target = path.with_name(f"{path.stem}_backup_{suffix}{path.suffix}")
        try:
            target.write_bytes(path.read_bytes())
        except OSError as exc:
            raise PersistenceError(f"backup of {path} failed: {exc}") from exc
        logger.info("Backup written to %s", target)
        return target
