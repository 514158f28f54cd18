"""
Configuration Loader for the page feed aggregator.

Loads and validates configuration from YAML files.
"""
import importlib
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import soupsieve
import yaml

from pagefeed.models import (
    AggregatorConfig,
    ChannelConfig,
    Custom,
    Declarative,
    Locator,
    LogLevel,
    SelectorRules,
    SourceConfig,
)

logger = logging.getLogger(__name__)

SELECTOR_FIELDS = ("items", "title", "link", "pub_date", "description")


class ConfigError(Exception):
    """Configuration error."""

    pass


class ConfigLoader:
    """
    Loads and validates aggregator configuration.

    Supports:
    - Loading from YAML file
    - Environment variable overrides (FEED_DIR)
    - CSS selector validation and custom function resolution
    """

    def __init__(self, config_path: Path):
        """
        Initialize config loader.

        Args:
            config_path: Path to config.yaml file
        """
        self.config_path = Path(config_path)

    def load(self) -> AggregatorConfig:
        """
        Load and validate configuration.

        Returns:
            AggregatorConfig object

        Raises:
            ConfigError: If config is invalid or missing
        """
        if not self.config_path.exists():
            raise ConfigError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML: {e}")

        if not config_data:
            raise ConfigError("Configuration file is empty")

        try:
            return self._parse_config(config_data)
        except ConfigError:
            raise
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}")

    def _parse_config(self, data: Dict[str, Any]) -> AggregatorConfig:
        """
        Parse and validate configuration data.

        Args:
            data: Parsed YAML data

        Returns:
            AggregatorConfig object

        Raises:
            ConfigError: If validation fails
        """
        log_level_str = str(data.get("log_level", "info")).lower()
        try:
            log_level = LogLevel(log_level_str)
        except ValueError:
            valid_levels = [level.value for level in LogLevel]
            raise ConfigError(f"Invalid log_level '{log_level_str}'. Valid values: {valid_levels}")

        max_items = self._positive_int(data, "max_items", 40)
        max_age_days = self._positive_int(data, "max_age_days", 7)
        default_timeout_ms = self._positive_int(data, "default_timeout_ms", 10000)

        sources_data = data.get("sources", [])
        if not sources_data:
            raise ConfigError("Configuration must include at least one source")

        sources = []
        seen_names = set()
        for source_data in sources_data:
            source = self._parse_source(source_data)
            if source.name in seen_names:
                raise ConfigError(f"Duplicate source name: {source.name}")
            seen_names.add(source.name)
            sources.append(source)

        feed_dir = os.getenv("FEED_DIR", data.get("feed_dir", "feed"))

        enabled_count = sum(1 for s in sources if s.enabled)
        logger.info(
            f"Loaded configuration with {len(sources)} sources ({enabled_count} enabled), "
            f"max {max_items} items per feed"
        )

        return AggregatorConfig(
            sources=tuple(sources),
            feed_dir=feed_dir,
            max_items=max_items,
            max_age_days=max_age_days,
            default_timeout_ms=default_timeout_ms,
            default_user_agent=data.get("default_user_agent"),
            log_level=log_level,
        )

    def _parse_source(self, data: Dict[str, Any]) -> SourceConfig:
        """
        Parse and validate a single source configuration.

        Args:
            data: Source configuration data

        Returns:
            SourceConfig object

        Raises:
            ConfigError: If validation fails
        """
        if not isinstance(data, dict):
            raise ConfigError(f"Source entry must be a mapping, got: {data!r}")

        for field in ("name", "url", "channel", "selectors"):
            if field not in data:
                raise ConfigError(f"Missing required field in source config: {field}")

        name = str(data["name"]).strip()
        if not name:
            raise ConfigError("Source name cannot be empty")

        url = data["url"]
        if not self._is_valid_url(url):
            raise ConfigError(f"Invalid URL for source '{name}': {url}")

        channel = self._parse_channel(name, data["channel"])

        selectors_data = data["selectors"]
        if not isinstance(selectors_data, dict):
            raise ConfigError(f"selectors for source '{name}' must be a mapping")
        rules = {}
        for field in SELECTOR_FIELDS:
            if field not in selectors_data:
                raise ConfigError(f"Missing selector '{field}' for source '{name}'")
            rules[field] = self._parse_rule(name, field, selectors_data[field])

        fetch_data = data.get("fetch") or {}
        next_page = None
        if fetch_data.get("next_page"):
            next_page = self._parse_rule(name, "next_page", fetch_data["next_page"])

        timeout_ms = fetch_data.get("timeout_ms")
        if timeout_ms is not None and (type(timeout_ms) is not int or timeout_ms < 1):
            raise ConfigError(f"timeout_ms for source '{name}' must be a positive integer, got: {timeout_ms}")

        return SourceConfig(
            name=name,
            url=url,
            channel=channel,
            selectors=SelectorRules(**rules),
            next_page=next_page,
            user_agent=fetch_data.get("user_agent"),
            timeout_ms=timeout_ms,
            date_attribute=data.get("date_attribute", "datetime"),
            enabled=data.get("enabled", True),
        )

    def _parse_channel(self, source_name: str, data: Dict[str, Any]) -> ChannelConfig:
        """Parse channel metadata for a source."""
        if not isinstance(data, dict):
            raise ConfigError(f"channel for source '{source_name}' must be a mapping")

        for field in ("title", "feed_path"):
            if not data.get(field):
                raise ConfigError(f"Missing required channel field '{field}' for source '{source_name}'")

        feed_path = str(data["feed_path"])
        if Path(feed_path).is_absolute() or ".." in Path(feed_path).parts:
            raise ConfigError(f"feed_path for source '{source_name}' must stay inside the feed directory")

        return ChannelConfig(
            title=data["title"],
            description=data.get("description", ""),
            language=data.get("language", "en"),
            feed_path=feed_path,
        )

    def _parse_rule(self, source_name: str, field: str, value: Any) -> Locator:
        """
        Parse one field rule.

        A string is a CSS selector; a mapping with a "function" key names
        a custom extractor as "module:attribute".
        """
        if isinstance(value, str):
            if not value.strip():
                raise ConfigError(f"Selector '{field}' for source '{source_name}' cannot be empty")
            try:
                soupsieve.compile(value)
            except soupsieve.SelectorSyntaxError as e:
                raise ConfigError(f"Invalid CSS selector '{value}' for {source_name}.{field}: {e}")
            return Declarative(value)

        if isinstance(value, dict) and value.get("function"):
            path = value["function"]
            return Custom(func=self._resolve_function(path), name=path)

        raise ConfigError(
            f"Rule '{field}' for source '{source_name}' must be a CSS selector "
            f"or a mapping with a 'function' key"
        )

    def _resolve_function(self, path: str):
        """Import a callable from a "module:attribute" path."""
        module_name, sep, attr = path.partition(":")
        if not sep or not module_name or not attr:
            raise ConfigError(f"Function path must look like 'module:attribute', got: {path}")

        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise ConfigError(f"Cannot import module for '{path}': {e}")

        func = getattr(module, attr, None)
        if not callable(func):
            raise ConfigError(f"'{path}' is not a callable")
        return func

    def _positive_int(self, data: Dict[str, Any], key: str, default: int) -> int:
        value = data.get(key, default)
        if type(value) is not int or value < 1:
            raise ConfigError(f"{key} must be a positive integer, got: {value}")
        return value

    def _is_valid_url(self, url: Optional[str]) -> bool:
        """
        Validate URL format.

        Only allows http and https schemes.

        Args:
            url: URL to validate

        Returns:
            True if valid HTTP/HTTPS URL, False otherwise
        """
        if not url or not isinstance(url, str):
            return False
        try:
            result = urlparse(url)
            if result.scheme not in ("http", "https"):
                logger.warning(f"URL has invalid scheme '{result.scheme}': {url}")
                return False
            return bool(result.netloc)
        except ValueError as e:
            logger.warning(f"Failed to parse URL '{url}': {e}")
            return False
