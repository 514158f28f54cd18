"""
Data models for the paginated page feed aggregator.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple, Union


class LogLevel(Enum):
    """Valid log levels for aggregator configuration."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Item:
    """
    One harvested list entry.

    The link is the item's identity: two items with the same link are
    the same item for deduplication and cursor comparison.
    """

    title: str
    link: str
    description: str
    pub_date: str  # Raw date text as found on the page


@dataclass(frozen=True)
class Declarative:
    """A CSS selector rule."""
    selector: str

    def __post_init__(self):
        if not self.selector or not self.selector.strip():
            raise ValueError("Declarative.selector cannot be empty")


@dataclass(frozen=True)
class Custom:
    """
    A custom extractor rule.

    Item-scoped functions are called as ``func(item, document, source)``;
    document-scoped functions (items, next page) as ``func(document, source)``.
    """
    func: Callable[..., Any]
    name: str = ""  # Import path, kept for logging and scaffolding


Locator = Union[Declarative, Custom]


@dataclass(frozen=True)
class SelectorRules:
    """Field rules for one source."""

    items: Locator
    title: Locator
    link: Locator
    pub_date: Locator
    description: Locator


@dataclass(frozen=True)
class ChannelConfig:
    """RSS channel metadata for one source."""

    title: str
    description: str
    language: str
    feed_path: str  # Relative to the feed output directory

    def __post_init__(self):
        if not self.title:
            raise ValueError("ChannelConfig.title cannot be empty")
        if not self.feed_path:
            raise ValueError("ChannelConfig.feed_path cannot be empty")


@dataclass(frozen=True)
class SourceConfig:
    """
    Configuration for a single monitored source.

    Immutable (frozen) so one loaded config can be shared by every run.
    """

    name: str
    url: str  # Entry page URL
    channel: ChannelConfig
    selectors: SelectorRules
    next_page: Optional[Locator] = None  # None means single-page source
    user_agent: Optional[str] = None
    timeout_ms: Optional[int] = None
    date_attribute: str = "datetime"
    enabled: bool = True

    def __post_init__(self):
        """Validate configuration fields."""
        if not self.name or not self.name.strip():
            raise ValueError("SourceConfig.name cannot be empty")
        if not self.url:
            raise ValueError("SourceConfig.url cannot be empty")
        if self.timeout_ms is not None and (type(self.timeout_ms) is not int or self.timeout_ms < 1):
            raise ValueError(
                f"SourceConfig.timeout_ms must be a positive integer, got: {self.timeout_ms}"
            )


@dataclass(frozen=True)
class AggregatorConfig:
    """
    Full aggregator configuration.

    Loaded from config.yaml.
    """

    sources: Tuple[SourceConfig, ...]
    feed_dir: str = "feed"
    max_items: int = 40
    max_age_days: int = 7
    default_timeout_ms: int = 10000
    default_user_agent: Optional[str] = None
    log_level: LogLevel = LogLevel.INFO

    def __post_init__(self):
        """Validate configuration."""
        if not self.sources:
            raise ValueError("AggregatorConfig.sources cannot be empty")
        for name in ("max_items", "max_age_days", "default_timeout_ms"):
            value = getattr(self, name)
            if type(value) is not int or value < 1:
                raise ValueError(
                    f"AggregatorConfig.{name} must be a positive integer, got: {value}"
                )


@dataclass(frozen=True)
class RunSettings:
    """
    Process-wide values threaded into the crawler and cursor store.

    Kept separate from AggregatorConfig so tests and single-source runs
    can inject their own values.
    """

    max_items: int = 40
    max_age_days: int = 7
    default_timeout_ms: int = 10000
    default_user_agent: Optional[str] = None
    ignore_last: bool = False

    @classmethod
    def from_config(cls, config: AggregatorConfig, ignore_last: bool = False) -> "RunSettings":
        return cls(
            max_items=config.max_items,
            max_age_days=config.max_age_days,
            default_timeout_ms=config.default_timeout_ms,
            default_user_agent=config.default_user_agent,
            ignore_last=ignore_last,
        )


@dataclass(frozen=True)
class Cursor:
    """Per-source resumption state."""

    last_link: Optional[str] = None
    last_run_at: Optional[datetime] = None


@dataclass(frozen=True)
class PageResult:
    """Items extracted from one page plus the next page URL, if any."""

    items: List[Item]
    next_page_url: Optional[str] = None


class CrawlState(Enum):
    """States of the crawl loop."""
    FETCHING = "fetching"
    EXTRACTED = "extracted"
    STOPPED = "stopped"


class StopReason(Enum):
    """Why the crawl loop left the EXTRACTED state for STOPPED."""
    EMPTY_PAGE = "empty_page"
    NO_NEXT_PAGE = "no_next_page"
    CURSOR_REACHED = "cursor_reached"
    ITEM_CAP = "item_cap"
    AGE_CUTOFF = "age_cutoff"
    PAGE_REVISITED = "page_revisited"


@dataclass
class CrawlResult:
    """Outcome of walking one source's page sequence."""

    items: List[Item] = field(default_factory=list)
    pages_fetched: int = 0
    stop_reason: Optional[StopReason] = None
