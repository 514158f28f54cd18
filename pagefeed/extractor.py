"""
Field extraction for list pages.

Resolves each source's field rules (CSS selector or custom function)
against a parsed page and produces Items plus the next page link.
"""
import logging
from datetime import datetime
from typing import List, Optional, Union
from urllib.parse import urljoin, urlparse

import soupsieve
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from pagefeed.models import Custom, Item, Locator, PageResult, SourceConfig

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when a page cannot be parsed or a rule cannot be applied."""
    pass


def resolve_link(link: str, base_url: str) -> str:
    """
    Resolve a root-relative link against the origin of base_url.

    Absolute links (and anything not starting with "/") are returned unchanged.
    """
    if not link or not link.startswith("/"):
        return link
    parsed = urlparse(base_url)
    return urljoin(f"{parsed.scheme}://{parsed.netloc}", link)


class PageExtractor:
    """Extracts Items and the next page URL from HTML using a source's rules."""

    def parse_document(self, html: Union[str, bytes]) -> BeautifulSoup:
        """
        Parse raw markup.

        Bytes are decoded by BeautifulSoup, honouring a <meta charset> declaration.

        Raises:
            ExtractionError: If the parser rejects the markup
        """
        try:
            return BeautifulSoup(html, "html.parser")
        except ParserRejectedMarkup as e:
            raise ExtractionError(f"Failed to parse page markup: {e}") from e

    def extract(self, html: Union[str, bytes], source: SourceConfig) -> PageResult:
        """
        Extract one page.

        Args:
            html: Page markup (text or undecoded bytes)
            source: Source configuration holding the field rules

        Returns:
            PageResult with items in page order and the next page URL (or None)
        """
        document = self.parse_document(html)
        try:
            items = self.extract_items(document, source)
            next_page_url = self.extract_next_page(document, source)
        except soupsieve.SelectorSyntaxError as e:
            raise ExtractionError(f"Invalid selector for source '{source.name}': {e}") from e

        logger.debug(f"Extracted {len(items)} items from page (next: {next_page_url})")
        return PageResult(items=items, next_page_url=next_page_url)

    def extract_items(self, document: BeautifulSoup, source: SourceConfig) -> List[Item]:
        """Build one Item per node matched by the items rule."""
        rules = source.selectors
        nodes = self._select_nodes(rules.items, document, source)

        items = []
        for node in nodes:
            title = self._extract_text(rules.title, node, document, source)
            link = self._extract_link(rules.link, node, document, source)
            pub_date = self._extract_pub_date(rules.pub_date, node, document, source)
            description = self._extract_text(rules.description, node, document, source)
            items.append(Item(
                title=title,
                link=link,
                description=description,
                pub_date=pub_date,
            ))
        return items

    def extract_next_page(self, document: BeautifulSoup, source: SourceConfig) -> Optional[str]:
        """Return the absolute next page URL, or None for the last page."""
        rule = source.next_page
        if rule is None:
            return None

        if isinstance(rule, Custom):
            next_url = rule.func(document, source)
            if not next_url:
                return None
            return resolve_link(str(next_url), source.url)

        element = document.select_one(rule.selector)
        if element is None:
            return None
        href = element.get("href")
        if not href:
            return None
        return resolve_link(href, source.url)

    def _select_nodes(self, rule: Locator, document: BeautifulSoup, source: SourceConfig) -> list:
        if isinstance(rule, Custom):
            return list(rule.func(document, source) or [])
        return document.select(rule.selector)

    def _extract_text(self, rule: Locator, node, document: BeautifulSoup, source: SourceConfig) -> str:
        if isinstance(rule, Custom):
            return rule.func(node, document, source)
        element = node.select_one(rule.selector)
        if element is None:
            return ""
        return element.get_text().strip()

    def _extract_link(self, rule: Locator, node, document: BeautifulSoup, source: SourceConfig) -> str:
        if isinstance(rule, Custom):
            link = rule.func(node, document, source)
            link = str(link) if link else ""
        else:
            element = node.select_one(rule.selector)
            link = element.get("href", "") if element is not None else ""
        return resolve_link(link, source.url)

    def _extract_pub_date(self, rule: Locator, node, document: BeautifulSoup, source: SourceConfig) -> str:
        if isinstance(rule, Custom):
            value = rule.func(node, document, source)
            if isinstance(value, datetime):
                return value.isoformat()
            return value or ""
        element = node.select_one(rule.selector)
        if element is None:
            return ""
        value = element.get(source.date_attribute, "")
        # Multi-valued attributes such as class come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return value
