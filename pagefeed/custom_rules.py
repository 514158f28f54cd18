"""
Reusable custom extractor functions.

Reference them from config.yaml as ``{function: "pagefeed.custom_rules:<name>"}``.
Item-scoped functions take ``(item, document, source)``.
"""


def _text(node, selector: str) -> str:
    element = node.select_one(selector)
    return element.get_text().strip() if element is not None else ""


def news_list_description(item, document, source) -> str:
    """
    Description in the form "<date text> <category> <title>".

    Matches the p-newsList markup used by www.gov-online.go.jp.
    """
    date_text = _text(item, ".p-newsList__date")
    category = _text(item, ".p-newsList__categoryLabel")
    title = _text(item, ".p-newsList__title")
    return f"{date_text} {category} {title}"


def item_text(item, document, source) -> str:
    """Whole text content of the item node."""
    return item.get_text(" ", strip=True)
