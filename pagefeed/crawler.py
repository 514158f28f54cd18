"""
Crawl loop for paginated list pages.

Walks a source's page sequence as a small state machine:

    FETCHING  -> fetch the current URL and extract it
    EXTRACTED -> evaluate the stop conditions in a fixed order
    STOPPED   -> done

Stop conditions, checked after each page in this order:
1. the page had no items
2. there is no next page
3. the previous run's cursor link has been seen
4. no cursor and the item cap has been reached
5. the last accumulated item is older than the age window

A next page URL that was already fetched in this crawl also stops it.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from pagefeed.dates import parse_date
from pagefeed.extractor import PageExtractor
from pagefeed.models import (
    CrawlResult,
    CrawlState,
    Item,
    PageResult,
    RunSettings,
    SourceConfig,
    StopReason,
)
from pagefeed.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Crawler:
    """
    Drives the page fetcher and extractor across one source's pages.

    Pages are fetched strictly one after another, since the next page
    URL is only known once the current page has been parsed.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: Optional[PageExtractor] = None,
        settings: Optional[RunSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize crawler.

        Args:
            fetcher: PageFetcher used for every page request
            extractor: PageExtractor (defaults to a new one)
            settings: Item cap, age window and network defaults
            clock: Returns the current aware datetime (injectable for tests)
        """
        self.fetcher = fetcher
        self.extractor = extractor or PageExtractor()
        self.settings = settings or RunSettings()
        self.clock = clock or _utcnow

    def crawl(self, source: SourceConfig, cursor_link: Optional[str] = None) -> CrawlResult:
        """
        Walk the source's pages until a stop condition fires.

        Args:
            source: Source to crawl
            cursor_link: Link of the newest item emitted by the previous run,
                or None for a cold start

        Returns:
            CrawlResult with every accumulated item (unfiltered)

        Raises:
            FetchError: If any page fetch fails
            ExtractionError: If any page cannot be parsed
        """
        cutoff = self.clock() - timedelta(days=self.settings.max_age_days)
        user_agent = source.user_agent or self.settings.default_user_agent
        timeout_ms = source.timeout_ms or self.settings.default_timeout_ms

        result = CrawlResult()
        visited = set()
        url = source.url
        page: Optional[PageResult] = None
        state = CrawlState.FETCHING

        logger.info(f"Crawling {source.name} from {url} (cursor: {cursor_link})")

        while state is not CrawlState.STOPPED:
            if state is CrawlState.FETCHING:
                visited.add(url)
                html = self.fetcher.fetch(url, user_agent=user_agent, timeout_ms=timeout_ms)
                result.pages_fetched += 1
                page = self.extractor.extract(html, source)
                state = CrawlState.EXTRACTED
                continue

            if not page.items:
                logger.warning(f"No items found on {url}, stopping")
                reason = StopReason.EMPTY_PAGE
            else:
                result.items.extend(page.items)
                reason = self.check_stop(result.items, page.next_page_url, cursor_link, cutoff)

            if reason is None and page.next_page_url in visited:
                logger.warning(f"Next page {page.next_page_url} was already fetched, stopping")
                reason = StopReason.PAGE_REVISITED

            if reason is not None:
                result.stop_reason = reason
                state = CrawlState.STOPPED
            else:
                url = page.next_page_url
                state = CrawlState.FETCHING

        logger.info(
            f"Crawl of {source.name} stopped ({result.stop_reason.value}) after "
            f"{result.pages_fetched} pages with {len(result.items)} items"
        )
        return result

    def check_stop(
        self,
        items: List[Item],
        next_page_url: Optional[str],
        cursor_link: Optional[str],
        cutoff: datetime,
    ) -> Optional[StopReason]:
        """
        Evaluate the stop conditions for a non-empty page.

        Args:
            items: All items accumulated so far
            next_page_url: Next page URL from the latest page, or None
            cursor_link: Previous run's cursor, or None
            cutoff: Items published before this moment are stale

        Returns:
            The first StopReason that applies, or None to keep crawling
        """
        if not next_page_url:
            logger.info("No next page URL found, stopping")
            return StopReason.NO_NEXT_PAGE

        if cursor_link and any(item.link == cursor_link for item in items):
            logger.info(f"Reached last processed URL {cursor_link}, stopping")
            return StopReason.CURSOR_REACHED

        if not cursor_link and len(items) >= self.settings.max_items:
            logger.info(f"Reached maximum items ({len(items)}), stopping")
            return StopReason.ITEM_CAP

        # Only the last item is checked; sources are assumed newest-first
        last = items[-1]
        item_date = parse_date(last.pub_date)
        if item_date is not None and item_date < cutoff:
            logger.info(f"Items are older than {self.settings.max_age_days} days ({item_date}), stopping")
            return StopReason.AGE_CUTOFF

        return None

    def filter_items(self, items: List[Item], cursor_link: Optional[str] = None) -> List[Item]:
        """
        Drop already-emitted items and apply the item cap.

        Everything from the cursor item onward is discarded, then the
        list is truncated to max_items whether or not a cursor was set.
        """
        if cursor_link:
            for index, item in enumerate(items):
                if item.link == cursor_link:
                    items = items[:index]
                    break

        return items[:self.settings.max_items]
