"""File-based persistence helpers for documents and route run exports."""

from __future__ import annotations

import json
import os
import re
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator
from urllib.parse import quote

from ..config import settings

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(value: str) -> str:
    """Readable, lossy file name for run directories and collection folders."""
    cleaned = _UNSAFE_CHARS.sub("_", value).strip("._")
    return cleaned or "_"


def document_filename(document_id: str) -> str:
    """Percent-encode a document id so distinct ids never share a file."""
    return f"{quote(document_id, safe='')}.json"


class FileStorage:
    """Thin wrapper around the data root for storing JSON and CSV files."""

    def __init__(self, root: Path | None = None) -> None:
        self.root = (root or settings.data_root).resolve()
        self.output_root = self.root / "outputs"
        self.documents_root = self.root / "documents"
        self.output_root.mkdir(parents=True, exist_ok=True)

    def make_run_directory(self, prefix: str = "routes") -> Path:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        path = self.output_root / f"{safe_filename(prefix)}_{timestamp}"
        path.mkdir(parents=True, exist_ok=False)
        return path

    def collection_directory(self, collection: str) -> Path:
        path = self.documents_root / safe_filename(collection)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def write_json(self, path: Path, data: Any, *, indent: int = 2) -> None:
        """Write JSON through a private temporary file so readers never see half a document.

        Concurrent writers to the same path each get their own temporary
        file; the last ``os.replace`` wins.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        )
        try:
            with handle:
                json.dump(data, handle, ensure_ascii=False, indent=indent, default=str)
            os.replace(handle.name, path)
        except BaseException:
            if os.path.exists(handle.name):
                os.unlink(handle.name)
            raise

    def read_json(self, path: Path) -> Any | None:
        if not path.exists():
            return None
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def iter_json(self, directory: Path) -> Iterator[Any]:
        for path in sorted(directory.glob("*.json")):
            data = self.read_json(path)
            if data is not None:
                yield data

    def write_csv(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            handle.write(content)
