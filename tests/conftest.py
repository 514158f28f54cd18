"""
Shared fixtures: a news-list page renderer and a matching source config.
"""
import pytest
from datetime import datetime, timezone

from pagefeed.models import (
    ChannelConfig,
    Custom,
    Declarative,
    SelectorRules,
    SourceConfig,
)
from pagefeed import custom_rules

BASE_URL = "https://news.example.com"
ENTRY_URL = f"{BASE_URL}/info/index.html"
NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)


def item_link(n: int) -> str:
    """Absolute link of item number n."""
    return f"{BASE_URL}/info/{n}.html"


def page_url(page: int) -> str:
    """Absolute URL of list page number page (1-based)."""
    if page == 1:
        return ENTRY_URL
    return f"{BASE_URL}/info/index_{page}.html"


def render_page(numbers, next_page=None, date="2026-10-16", dates=None) -> str:
    """
    Render a p-newsList page.

    Args:
        numbers: Item numbers to render, in page order
        next_page: Number of the next page, or None for the last page
        date: datetime attribute used for every item
        dates: Optional per-item datetime attributes (overrides date)
    """
    rows = []
    for index, n in enumerate(numbers):
        item_date = dates[index] if dates else date
        rows.append(
            f'<li><a class="p-newsList__link" href="/info/{n}.html">'
            f'<time class="p-newsList__date" datetime="{item_date}">{item_date}</time>'
            f'<span class="p-newsList__categoryLabel">Notice</span>'
            f'<span class="p-newsList__title"> Item {n} </span>'
            f'</a></li>'
        )
    pagination = ""
    if next_page is not None:
        href = "/info/index.html" if next_page == 1 else f"/info/index_{next_page}.html"
        pagination = f'<div class="p-pagination__next"><a href="{href}">Next</a></div>'
    return (
        "<html><body>"
        f'<ul class="p-newsList">{"".join(rows)}</ul>'
        f"{pagination}"
        "</body></html>"
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def source():
    """Source config for the rendered p-newsList pages."""
    return SourceConfig(
        name="example-news",
        url=ENTRY_URL,
        channel=ChannelConfig(
            title="Example News",
            description="Latest notices",
            language="en",
            feed_path="example.rss",
        ),
        selectors=SelectorRules(
            items=Declarative("ul.p-newsList li"),
            title=Declarative(".p-newsList__title"),
            link=Declarative(".p-newsList__link"),
            pub_date=Declarative(".p-newsList__date"),
            description=Custom(
                func=custom_rules.news_list_description,
                name="pagefeed.custom_rules:news_list_description",
            ),
        ),
        next_page=Declarative("div.p-pagination__next a"),
    )


SOURCE_YAML = f"""
feed_dir: "{{feed_dir}}"
max_items: 40
max_age_days: 7
sources:
  - name: example-news
    url: {ENTRY_URL}
    channel:
      title: Example News
      description: Latest notices
      language: en
      feed_path: example.rss
    selectors:
      items: ul.p-newsList li
      title: .p-newsList__title
      link: .p-newsList__link
      pub_date: .p-newsList__date
      description:
        function: pagefeed.custom_rules:news_list_description
    fetch:
      next_page: div.p-pagination__next a
"""


@pytest.fixture
def config_file(tmp_path):
    """Write a one-source config.yaml and return its path."""
    config_path = tmp_path / "config.yaml"
    config_path.write_text(SOURCE_YAML.format(feed_dir=tmp_path / "feed"))
    return config_path
