"""One-file-per-record persistence.

A ``RecordDirectory`` owns a single directory and maps each record to
``<name><ext>`` inside it.  Writes fully replace the file, deletes are
idempotent and every I/O error is logged and reported as ``False`` so the
calling store can keep its cache unchanged.  The only exception that
escapes is ``StoreError`` when the directory itself cannot be created.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple

from libstore import codec

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Raised when a store cannot be opened at all."""


class RecordDirectory:
    """Reads and writes flat ``key=value`` record files in one directory."""

    def __init__(self, path: str | os.PathLike, ext: str = ".properties", header: Optional[str] = None) -> None:
        self.path = Path(path)
        self.ext = ext if ext.startswith(".") else f".{ext}"
        self.header = header

    def ensure(self) -> None:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot create record directory {self.path}") from exc

    def file_for(self, name: str) -> Path:
        return self.path / f"{name}{self.ext}"

    def read_all(self) -> Iterator[Tuple[Path, Dict[str, str]]]:
        """Yield ``(path, props)`` for every readable record file.

        Files that cannot be read or decoded are logged and skipped.
        """
        try:
            files = sorted(p for p in self.path.glob(f"*{self.ext}") if p.is_file())
        except OSError as e:
            logger.error(f"Error listing {self.path}: {e}")
            return
        for file in files:
            try:
                text = file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to load record {file}: {e}")
                continue
            yield file, codec.loads(text)

    def write(self, name: str, props: Dict[str, str]) -> bool:
        target = self.file_for(name)
        try:
            target.write_text(codec.dumps(props, header=self.header), encoding="utf-8")
            return True
        except OSError as e:
            logger.error(f"Failed to save record {target}: {e}")
            return False

    def delete(self, name: str) -> bool:
        target = self.file_for(name)
        try:
            target.unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"Failed deleting {target}: {e}")
            return False
