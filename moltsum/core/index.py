"""
Deduplicated post index across snapshot documents.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from moltsum.core.post import Post

logger = logging.getLogger(__name__)

DEFAULT_BUCKETS = ("hot", "top", "new", "rising")
MIN_CONTENT_LENGTH = 50


def iter_bucket_posts(document: Dict, buckets: Sequence[str] = DEFAULT_BUCKETS) -> Iterator[Dict]:
    """
    Yield every post dict of a document, bucket by bucket.

    Documents without ``feeds`` and buckets that are missing or not lists are
    skipped.
    """
    feeds = document.get('feeds') if isinstance(document, dict) else None
    if not isinstance(feeds, dict):
        return
    for bucket in buckets:
        posts = feeds.get(bucket)
        if not isinstance(posts, list):
            continue
        yield from posts


def is_eligible(post: Post, min_content_length: int = MIN_CONTENT_LENGTH) -> bool:
    """
    Whether a post still needs a generated summary.

    Args:
        post: Post to check
        min_content_length: Shortest content worth summarizing

    Returns:
        True if the post has no summary and enough content
    """
    if post.summary:
        return False
    if not post.content:
        return False
    return len(post.content) >= min_content_length


@dataclass
class IndexEntry:
    """
    One distinct post and the documents that contain it.
    """
    post: Post
    documents: List[Path] = field(default_factory=list)

    def add_document(self, path: Path) -> None:
        if path not in self.documents:
            self.documents.append(path)


class PostIndex:
    """
    Maps post ids to an IndexEntry, in order of first appearance.
    """
    def __init__(self):
        self.entries: Dict[str, IndexEntry] = {}

    @classmethod
    def build(
        cls,
        documents: Iterable[Tuple[Path, Dict]],
        buckets: Sequence[str] = DEFAULT_BUCKETS,
    ) -> "PostIndex":
        """
        Index every post of the given documents.

        The first occurrence of an id (document order, then bucket order, then
        position) is kept as its representative.

        Args:
            documents: (path, document) pairs as returned by the store
            buckets: Feed buckets to scan, in order

        Returns:
            The populated index
        """
        index = cls()
        for path, document in documents:
            for data in iter_bucket_posts(document, buckets):
                post = Post.from_dict(data)
                if post is None:
                    continue
                index.add(post, path)
        logger.debug(f"Indexed {len(index)} distinct posts")
        return index

    def add(self, post: Post, path: Path) -> IndexEntry:
        entry = self.entries.get(post.id)
        if entry is None:
            entry = IndexEntry(post=post)
            self.entries[post.id] = entry
        elif post.content != entry.post.content:
            # Only reported; the first occurrence stays the representative
            logger.warning(
                f"Post {post.id} has different content in {path} than in "
                f"{entry.documents[0]}; using the first occurrence"
            )
        entry.add_document(path)
        return entry

    def eligible(self, min_content_length: int = MIN_CONTENT_LENGTH) -> List[IndexEntry]:
        """Entries whose representative post needs a summary, in discovery order."""
        return [
            entry for entry in self.entries.values()
            if is_eligible(entry.post, min_content_length)
        ]

    def get(self, post_id: str) -> IndexEntry:
        return self.entries[post_id]

    def __contains__(self, post_id: str) -> bool:
        return post_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[IndexEntry]:
        return iter(self.entries.values())
