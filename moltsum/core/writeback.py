"""
Writing generated summaries back into snapshot documents.
"""
import asyncio
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from moltsum.core.index import DEFAULT_BUCKETS, iter_bucket_posts
from moltsum.core.post import BilingualSummary
from moltsum.core.store import SnapshotStore
from moltsum.errors import SnapshotIOError

logger = logging.getLogger(__name__)


def apply_summary(document: Dict, post_id: str, fields: Dict[str, str],
                  buckets: Sequence[str] = DEFAULT_BUCKETS) -> bool:
    """
    Set summary fields on every occurrence of a post inside one document.

    Args:
        document: Snapshot document, modified in place
        post_id: Id of the post to update
        fields: Field values to set
        buckets: Feed buckets to scan

    Returns:
        True if any value actually changed
    """
    changed = False
    for post in iter_bucket_posts(document, buckets):
        if not isinstance(post, dict) or post.get('id') != post_id:
            continue
        for key, value in fields.items():
            if post.get(key) != value:
                post[key] = value
                changed = True
    return changed


class WriteBack:
    """
    Persists summaries into every document that contains a post.

    Each document is reloaded right before it is modified and written only
    when something changed. Updates to the same document are serialized with
    a per-path lock.
    """
    def __init__(self, store: SnapshotStore, buckets: Sequence[str] = DEFAULT_BUCKETS):
        self.store = store
        self.buckets = tuple(buckets)
        self.locks = defaultdict(asyncio.Lock)

    async def apply(self, post_id: str, result: BilingualSummary, documents: Iterable[Path]) -> List[Path]:
        """
        Write a summary to all documents holding the post.

        Args:
            post_id: Id of the summarized post
            result: Parsed generation result
            documents: Documents the index found the post in

        Returns:
            Paths of the documents that were rewritten

        Raises:
            SnapshotIOError: If any document failed; the others are still updated
        """
        fields = result.as_fields()
        written = []
        first_error: Optional[SnapshotIOError] = None

        for path in documents:
            try:
                if await self._apply_one(path, post_id, fields):
                    written.append(path)
            except SnapshotIOError as e:
                logger.error(f"Could not write summary for {post_id} to {path}: {e}")
                if first_error is None:
                    first_error = e

        if first_error is not None:
            raise first_error
        return written

    async def _apply_one(self, path: Path, post_id: str, fields: Dict[str, str]) -> bool:
        async with self.locks[path]:
            document = await asyncio.to_thread(self.store.load, path)
            if document is None:
                logger.warning(f"Snapshot {path} disappeared; skipping write-back for {post_id}")
                return False

            if not apply_summary(document, post_id, fields, self.buckets):
                logger.debug(f"No change for {post_id} in {path}")
                return False

            await asyncio.to_thread(self.store.save, path, document)
            logger.debug(f"Wrote summary for {post_id} to {path}")
            return True
