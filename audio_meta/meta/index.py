"""Folder index of metadata records.

The index is rebuilt from a full listing after every record write and
overwrites the previous one; it is never patched incrementally.

Two files landing in the same folder at the same time can each list the
folder before the other's record exists. The later index write then
misses one record until the next upload in that folder rebuilds it.
"""

from __future__ import annotations

import json
import logging

from audio_meta.meta.paths import INDEX_FILENAME, SourceObject
from audio_meta.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class FolderIndexer:
    """Rebuilds ``<meta folder>/index.json`` from the folder listing."""

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    def list_entries(self, source: SourceObject) -> list[str]:
        """Record filenames relative to the meta folder, sorted."""
        prefix = f"{source.meta_folder}/"
        entries = {
            key[len(prefix) :]
            for key in self._store.list_keys(source.bucket, prefix)
            if key.startswith(prefix)
        }
        entries.discard(INDEX_FILENAME)
        entries.discard("")
        return sorted(entries)

    def rebuild(self, source: SourceObject) -> list[str]:
        """List the meta folder and overwrite the index with it.

        Returns:
            The entries written to the index.
        """
        entries = self.list_entries(source)
        self._store.put(
            source.bucket,
            source.index_key,
            json.dumps(entries, ensure_ascii=False).encode("utf-8"),
            "application/json",
        )
        logger.info(
            "Index updated with %d entries",
            len(entries),
            extra={"file_key": source.key, "stage": "index"},
        )
        return entries
