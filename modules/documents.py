"""Filesystem document store with bucket semantics.

Files live under ``<root>/<bucket>/<path>``. Paths are confined to their bucket
directory so a crafted path cannot escape it.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Iterable

from loguru import logger

from modules.errors import NotFound, StoreUnavailable, UploadFailed

ID_PROOF_BUCKET = "gate-pass-documents"
TICKET_BUCKET = "gate-pass-tickets"


class DocumentStore:
    """Upload, download and remove stored files."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _resolve(self, bucket: str, path: str) -> Path:
        base = (self.root / bucket).resolve()
        target = (base / path).resolve()
        if not path or base not in target.parents:
            raise NotFound(f"Invalid document path: {path}", code="invalid_path")
        return target

    def exists(self, bucket: str, path: str) -> bool:
        return self._resolve(bucket, path).is_file()

    def upload(self, bucket: str, path: str, data: bytes) -> str:
        """Store ``data`` at ``path``. Existing files are never overwritten."""
        target = self._resolve(bucket, path)
        if target.exists():
            raise UploadFailed(f"Document already exists: {path}", code="duplicate_path")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                os.replace(tmp, target)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.exception("failed to store {}/{}", bucket, path)
            raise UploadFailed("Failed to upload document") from exc
        logger.info("stored {}/{} ({} bytes)", bucket, path, len(data))
        return path

    def download(self, bucket: str, path: str) -> bytes:
        target = self._resolve(bucket, path)
        if not target.is_file():
            raise NotFound("Document not found")
        try:
            return target.read_bytes()
        except OSError as exc:
            logger.exception("failed to read {}/{}", bucket, path)
            raise StoreUnavailable("Document store unavailable") from exc

    def remove(self, bucket: str, paths: Iterable[str]) -> list[str]:
        """Remove ``paths``; missing files are skipped. Returns removed paths."""
        removed = []
        for path in paths:
            target = self._resolve(bucket, path)
            try:
                target.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.exception("failed to remove {}/{}", bucket, path)
                raise StoreUnavailable("Document store unavailable") from exc
            removed.append(path)
        if removed:
            logger.info("removed {} from {}", removed, bucket)
        return removed
