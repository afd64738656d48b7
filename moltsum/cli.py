"""
Command-line interface for moltsum.
"""
import sys
import argparse
import logging
import asyncio
from typing import List, Optional

from moltsum.config import Config, Settings, get_config, load_settings
from moltsum.core.index import IndexEntry, PostIndex
from moltsum.core.processor import SummaryProcessor
from moltsum.core.store import SnapshotStore
from moltsum.core.writeback import WriteBack
from moltsum.errors import ConfigurationError
from moltsum.generators.chat import SummaryGenerator

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def parse_args(argv: Optional[List[str]] = None):
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Generate bilingual summaries for Moltbook snapshots")
    parser.add_argument("--data-dir", help="Directory holding latest.json and archive/")
    parser.add_argument("--config", help="Path to a YAML or JSON config file")
    parser.add_argument("--batch-size", type=int, help="Posts generated concurrently per batch")
    parser.add_argument("--batch-delay-ms", type=int, help="Pause between batches in milliseconds")
    parser.add_argument("--min-content-length", type=int, help="Skip posts with shorter content")
    parser.add_argument("--limit", type=int, help="Maximum number of posts to summarize (0 = no limit)", default=0)
    parser.add_argument("--dry-run", action="store_true", help="List posts needing summaries and exit")
    parser.add_argument("--log-file", help="Also write the log to this file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def apply_overrides(config: Config, args) -> None:
    """Copy command-line overrides into the config."""
    if args.data_dir:
        config.set('data.directory', args.data_dir)
    if args.batch_size is not None:
        config.set('summary.batch_size', args.batch_size)
    if args.batch_delay_ms is not None:
        config.set('summary.batch_delay_ms', args.batch_delay_ms)
    if args.min_content_length is not None:
        config.set('summary.min_content_length', args.min_content_length)


def collect_entries(store: SnapshotStore, settings: Settings, limit: int = 0) -> List[IndexEntry]:
    """
    Load all snapshots and return the posts that need a summary.

    Args:
        store: Snapshot store
        settings: Run settings
        limit: Maximum number of entries (0 = no limit)

    Returns:
        Eligible index entries in discovery order
    """
    documents = store.load_all()
    logger.info(f"Scanning {len(documents)} data files for posts needing summaries...")
    index = PostIndex.build(documents, settings.buckets)
    entries = index.eligible(settings.min_content_length)
    if limit > 0:
        entries = entries[:limit]
    return entries


def build_generator(settings: Settings) -> SummaryGenerator:
    return SummaryGenerator(
        auth_token=settings.auth_token,
        base_url=settings.base_url,
        model=settings.model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
        max_retries=settings.max_retries,
        retry_base_delay=settings.retry_base_delay,
        timeout=settings.timeout_seconds,
    )


async def async_main(args) -> int:
    """
    Run the summary pipeline.

    Returns:
        Process exit code
    """
    config = get_config(args.config)
    apply_overrides(config, args)
    settings = load_settings(config, require_token=not args.dry_run)

    store = SnapshotStore(settings.data_dir, settings.latest_name, settings.archive_dir)
    entries = await asyncio.to_thread(collect_entries, store, settings, args.limit)

    if not entries:
        logger.info("All posts already have summaries (or no eligible posts found). Nothing to do.")
        return 0

    logger.info(f"Found {len(entries)} posts needing summaries.")

    if args.dry_run:
        for entry in entries:
            files = ', '.join(str(path) for path in entry.documents)
            print(f"{entry.post.id}\t{entry.post.title[:60]}\t{files}")
        return 0

    async with build_generator(settings) as generator:
        processor = SummaryProcessor(
            generator,
            WriteBack(store, settings.buckets),
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay,
        )
        result = await processor.run(entries)

    if result.failures:
        logger.error(f"{result.failure_count} post(s) failed:")
    for post_id, reason in result.failures:
        logger.error(f"  {post_id}: {reason}")

    if result.all_failed:
        logger.error("All summaries failed to generate.")
        return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the command-line script.
    """
    args = parse_args(argv)
    setup_logging(args.verbose, args.log_file)
    try:
        return asyncio.run(async_main(args))
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Process interrupted by user")
        return 1
    except Exception as e:
        logger.exception(f"Summary generation failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
