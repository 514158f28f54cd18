"""
RSS 2.0 feed assembly.
"""
import logging
from email.utils import format_datetime
from pathlib import Path
from typing import List
from xml.etree import ElementTree as ET

from pagefeed.dates import parse_date
from pagefeed.models import ChannelConfig, Item

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'


def format_rss_date(date_text: str) -> str:
    """
    Format raw date text as an RFC 822 date.

    Falls back to the raw text if it cannot be parsed.
    """
    parsed = parse_date(date_text)
    if parsed is None:
        logger.warning(f"Error formatting date '{date_text}', using original")
        return date_text
    return format_datetime(parsed, usegmt=True)


class FeedBuilder:
    """
    Builds RSS 2.0 documents from harvested items.

    Item order is kept as given; an empty item list still yields a
    well-formed document with just the channel metadata.
    """

    def build(self, items: List[Item], channel: ChannelConfig, link: str) -> str:
        """
        Build the feed XML.

        Args:
            items: Filtered items, newest first
            channel: Channel metadata
            link: Canonical channel link (the source entry URL)

        Returns:
            RSS XML document as a string
        """
        rss = ET.Element("rss", version="2.0")
        channel_el = ET.SubElement(rss, "channel")
        ET.SubElement(channel_el, "title").text = channel.title
        ET.SubElement(channel_el, "link").text = link
        ET.SubElement(channel_el, "description").text = channel.description
        ET.SubElement(channel_el, "language").text = channel.language

        for item in items:
            item_el = ET.SubElement(channel_el, "item")
            ET.SubElement(item_el, "title").text = item.title
            ET.SubElement(item_el, "link").text = item.link
            ET.SubElement(item_el, "description").text = item.description
            ET.SubElement(item_el, "pubDate").text = format_rss_date(item.pub_date)

        ET.indent(rss, space="  ")
        body = ET.tostring(rss, encoding="unicode")
        return f"{XML_DECLARATION}\n{body}\n"

    def write(self, xml: str, path: Path) -> Path:
        """Write the feed document, creating parent directories."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(xml, encoding="utf-8")
        logger.info(f"RSS file saved to {path}")
        return path
