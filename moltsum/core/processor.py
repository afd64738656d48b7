"""
Batch processing of summary generation for moltsum.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Protocol, Sequence, Tuple

from tqdm import tqdm

from moltsum.core.index import IndexEntry
from moltsum.core.parser import parse_bilingual
from moltsum.core.writeback import WriteBack
from moltsum.errors import SnapshotIOError, SummaryError

logger = logging.getLogger(__name__)

BATCH_SIZE = 3
BATCH_DELAY = 1.0  # seconds


class Generator(Protocol):
    """Anything with an async generate(title, content) -> str."""

    async def generate(self, title: str, content: str) -> str:
        ...


@dataclass
class RunResult:
    """
    Outcome counts of one pipeline run.
    """
    success_count: int = 0
    failure_count: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success_count + self.failure_count

    @property
    def all_failed(self) -> bool:
        return self.success_count == 0 and self.failure_count > 0


def make_batches(entries: Sequence[IndexEntry], batch_size: int) -> List[List[IndexEntry]]:
    """Split entries into consecutive batches of at most batch_size."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(entries[i:i + batch_size]) for i in range(0, len(entries), batch_size)]


class SummaryProcessor:
    """
    Generates summaries batch by batch and writes each one back as soon as it
    is ready.

    Posts inside a batch run concurrently and one post's failure never affects
    the others. Batches run one after another with a pause in between.
    """
    def __init__(
        self,
        generator: Generator,
        writeback: WriteBack,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        show_progress: bool = True,
    ):
        self.generator = generator
        self.writeback = writeback
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.sleep = sleep
        self.show_progress = show_progress

    async def process_entry(self, entry: IndexEntry) -> str:
        """
        Generate, parse and write back the summary for one post.

        Args:
            entry: Index entry of the post

        Returns:
            The post id
        """
        post = entry.post
        logger.info(f"Generating summary for: {post.title[:60]}...")
        raw = await self.generator.generate(post.title, post.content or "")
        result = parse_bilingual(raw)
        if result.title_zh is None:
            logger.info(f"Response for {post.id} has no titles; stored in fallback form")
        written = await self.writeback.apply(post.id, result, entry.documents)
        logger.info(f"Done: {post.id} ({len(written)} document(s) updated)")
        return post.id

    async def run(self, entries: Sequence[IndexEntry]) -> RunResult:
        """
        Process every entry.

        Args:
            entries: Eligible index entries in discovery order

        Returns:
            RunResult with success and failure counts
        """
        result = RunResult()
        batches = make_batches(entries, self.batch_size)

        with tqdm(total=len(entries), desc="Generating summaries", disable=not self.show_progress) as pbar:
            for number, batch in enumerate(batches, 1):
                logger.info(f"Batch {number}/{len(batches)}")

                outcomes = await asyncio.gather(
                    *(self.process_entry(entry) for entry in batch),
                    return_exceptions=True,
                )

                for entry, outcome in zip(batch, outcomes):
                    if isinstance(outcome, (SummaryError, SnapshotIOError)):
                        self._record_failure(result, entry, str(outcome))
                    elif isinstance(outcome, Exception):
                        logger.error(f"Unexpected error for {entry.post.id}", exc_info=outcome)
                        self._record_failure(result, entry, f"{type(outcome).__name__}: {outcome}")
                    elif isinstance(outcome, BaseException):
                        # Cancellation and interrupts end the run
                        raise outcome
                    else:
                        result.success_count += 1
                    pbar.update(1)

                if number < len(batches) and self.batch_delay > 0:
                    await self.sleep(self.batch_delay)

        logger.info(f"Done: {result.success_count} succeeded, {result.failure_count} failed.")
        return result

    def _record_failure(self, result: RunResult, entry: IndexEntry, reason: str):
        result.failure_count += 1
        result.failures.append((entry.post.id, reason))
        logger.error(f"Failed: {entry.post.id}: {reason}")
