"""
Main Orchestration Script for the Page Feed Aggregator.

Coordinates all components, per source:
1. Read the previous run's cursor
2. Crawl the source's list pages
3. Drop already-emitted items and apply the item cap
4. Write the RSS feed
5. Save the new cursor

Designed to run via CRON (single execution, then exit).
"""
import argparse
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from pagefeed.config import ConfigLoader
from pagefeed.crawler import Crawler
from pagefeed.cursor_store import CursorStore, source_key
from pagefeed.extractor import PageExtractor
from pagefeed.feed_builder import FeedBuilder
from pagefeed.models import Item, RunSettings, SourceConfig
from pagefeed.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


class Aggregator:
    """
    Main aggregator orchestration.

    Coordinates all components to crawl sources and write their feeds.
    """

    def __init__(
        self,
        config_path: Path,
        state_file: Path,
        ignore_last: bool = False,
        fetcher: Optional[PageFetcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize aggregator.

        Args:
            config_path: Path to config.yaml
            state_file: Path to state.json
            ignore_last: Ignore stored cursors and don't update them
            fetcher: Optional PageFetcher (for testing)
            clock: Optional clock returning an aware datetime (for testing)
        """
        logger.info("Loading configuration...")
        config_loader = ConfigLoader(config_path)
        self.config = config_loader.load()
        logging.getLogger().setLevel(self.config.log_level.value.upper())

        logger.info("Initializing components...")
        self.settings = RunSettings.from_config(self.config, ignore_last=ignore_last)
        self.fetcher = fetcher or PageFetcher(
            timeout_ms=self.settings.default_timeout_ms,
            user_agent=self.settings.default_user_agent,
        )
        self.crawler = Crawler(
            self.fetcher,
            extractor=PageExtractor(),
            settings=self.settings,
            clock=clock,
        )
        self.cursor_store = CursorStore(state_file, ignore_last=ignore_last)
        self.feed_builder = FeedBuilder()
        self.feed_dir = Path(self.config.feed_dir)
        self.state_file = state_file

    def run(self, source_name: Optional[str] = None) -> Dict[str, List[str]]:
        """
        Run aggregator over every enabled source (or just one).

        This is the main entry point for CRON execution.

        Args:
            source_name: Only process the source with this name

        Returns:
            {"succeeded": [...], "failed": [...]} source names

        Raises:
            ValueError: If source_name doesn't match a configured source
        """
        logger.info("=" * 60)
        logger.info("Starting Page Feed Aggregator")
        logger.info("=" * 60)

        if source_name:
            sources = [s for s in self.config.sources if s.name == source_name]
            if not sources:
                raise ValueError(f"Unknown source: {source_name}")
        else:
            sources = [s for s in self.config.sources if s.enabled]
        logger.info(f"Processing {len(sources)} sources")

        summary = {"succeeded": [], "failed": []}
        for source in sources:
            try:
                self.process_source(source)
                summary["succeeded"].append(source.name)
            except KeyboardInterrupt:
                logger.info("Received interrupt signal, stopping...")
                raise
            except Exception as e:
                # Log error but continue with other sources
                logger.error(f"Error processing source '{source.name}': {e}", exc_info=True)
                summary["failed"].append(source.name)
                continue

        logger.info("=" * 60)
        logger.info(
            f"Aggregator run completed: {len(summary['succeeded'])} succeeded, "
            f"{len(summary['failed'])} failed"
        )
        logger.info("=" * 60)
        return summary

    def process_source(self, source: SourceConfig) -> List[Item]:
        """
        Process a single source.

        Args:
            source: SourceConfig object

        Returns:
            Items written to the feed (empty if nothing new)
        """
        key = source_key(source.url)
        cursor_link = self.cursor_store.read_last_link(key)
        logger.info(f"Processing source: {source.name} ({source.url}), last link: {cursor_link}")

        result = self.crawler.crawl(source, cursor_link)
        items = self.crawler.filter_items(result.items, cursor_link)

        if not items:
            logger.info(f"{source.name}: no new items found")
            return items

        logger.info(f"{source.name}: generating RSS with {len(items)} items")
        xml = self.feed_builder.build(items, source.channel, source.url)
        self.feed_builder.write(xml, self.feed_dir / source.channel.feed_path)

        self.cursor_store.save_cursor(key, items[0].link)
        return items


def _env_flag(name: str) -> bool:
    return os.getenv(name, "") == "1"


def main(argv: Optional[List[str]] = None):
    """
    Main entry point for command-line execution.

    Usage:
        pagefeed [--source NAME]

    Environment:
        CONFIG_PATH  config file (default: config.yaml)
        STATE_FILE   cursor state file (default: data/state.json)
        IGNORE_LAST  set to 1 to ignore and keep stored cursors
    """
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Generate RSS feeds from paginated list pages.")
    parser.add_argument("--source", help="Only process the source with this name")
    args = parser.parse_args(argv)

    config_path = Path(os.getenv("CONFIG_PATH", "config.yaml"))
    state_file = Path(os.getenv("STATE_FILE", "data/state.json"))
    ignore_last = _env_flag("IGNORE_LAST")

    if not config_path.exists():
        logger.error(f"Configuration file not found: {config_path}")
        logger.error("Please create config.yaml (see config.example.yaml)")
        sys.exit(1)

    try:
        aggregator = Aggregator(
            config_path=config_path,
            state_file=state_file,
            ignore_last=ignore_last,
        )
        summary = aggregator.run(source_name=args.source)
    except Exception as e:
        logger.error(f"Aggregator failed: {e}", exc_info=True)
        sys.exit(1)

    # Single-source runs fail on that source; batches only when nothing succeeded
    if summary["failed"] and (args.source or not summary["succeeded"]):
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
