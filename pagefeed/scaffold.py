"""
Source scaffolding for config.yaml.

Adds a disabled skeleton source entry for a new URL, or shows the
existing entry if the URL is already configured.
"""
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import yaml

from pagefeed.cursor_store import source_key
from pagefeed.page_fetcher import PageFetcher

logger = logging.getLogger(__name__)


def default_source(url: str) -> Dict[str, Any]:
    """
    Build a skeleton source entry for url.

    The selectors are generic placeholders that load cleanly; the entry
    stays disabled until they are adjusted to the target page.
    """
    hostname = urlparse(url).hostname
    return {
        "name": source_key(url),
        "url": url,
        "enabled": False,
        "channel": {
            "title": f"RSS Feed for {hostname}",
            "description": f"RSS feed generated from {url}",
            "language": "en",
            "feed_path": f"{hostname}.rss",
        },
        "selectors": {
            "items": "article",
            "title": "h2",
            "link": "a",
            "pub_date": "time",
            "description": {"function": "pagefeed.custom_rules:item_text"},
        },
        "date_attribute": "datetime",
        "fetch": {
            "user_agent": PageFetcher.DEFAULT_USER_AGENT,
            "timeout_ms": PageFetcher.DEFAULT_TIMEOUT_MS,
        },
    }


class SourceScaffolder:
    """Reads and updates the sources list of a config file."""

    def __init__(self, config_path: Path):
        self.config_path = Path(config_path)

    def _load(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {}
        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def find_source(self, url: str) -> Optional[Dict[str, Any]]:
        """Return the configured entry for url, if any."""
        sources: List[Dict[str, Any]] = self._load().get("sources") or []
        for source in sources:
            if source.get("url") == url:
                return source
        return None

    def add_source(self, url: str) -> Dict[str, Any]:
        """
        Append a skeleton entry for url to the config file.

        Returns:
            The new source entry

        Raises:
            ValueError: If the URL is not http(s) or is already configured
        """
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid URL: {url}")
        if self.find_source(url) is not None:
            raise ValueError(f"Source already configured for {url}")

        data = self._load()
        entry = default_source(url)
        data.setdefault("sources", [])
        data["sources"] = (data["sources"] or []) + [entry]

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)

        logger.info(f"Added source {entry['name']} to {self.config_path}")
        return entry


def main(argv: Optional[List[str]] = None):
    """
    Create or display the config entry for a URL.

    Usage:
        pagefeed-source <URL>
    """
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    parser = argparse.ArgumentParser(description="Scaffold a source entry in config.yaml.")
    parser.add_argument("url", help="Entry page URL of the source")
    args = parser.parse_args(argv)

    scaffolder = SourceScaffolder(Path(os.getenv("CONFIG_PATH", "config.yaml")))

    existing = scaffolder.find_source(args.url)
    if existing is not None:
        print(f"Source already exists for {args.url} (key: {source_key(args.url)})")
        print("=" * 50)
        print(yaml.safe_dump(existing, sort_keys=False, allow_unicode=True))
        sys.exit(0)

    try:
        entry = scaffolder.add_source(args.url)
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.error(f"Error creating source entry: {e}")
        sys.exit(1)

    print(f"Created source entry for {args.url} (key: {source_key(args.url)})")
    print("=" * 50)
    print(yaml.safe_dump(entry, sort_keys=False, allow_unicode=True))
    print("Edit the selectors for your target page, then set enabled: true.")
    sys.exit(0)


if __name__ == "__main__":
    main()
