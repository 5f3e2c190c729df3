"""Dashboard page registry.

Each page declares whether the current search has to be mirrored into its URL
query string so the view can be shared or bookmarked.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Page:
    """A menu entry of the dashboard."""

    key: str
    label: str
    search_params_required: bool = False

    @property
    def is_external(self) -> bool:
        return self.key.startswith(("http://", "https://"))

    @property
    def name(self) -> str:
        return self.key.lstrip("/")


PAGES: tuple[Page, ...] = (
    Page(key="/dashboard", label="dashboard_page_title"),
    Page(key="/timeline", label="timeline_page_title", search_params_required=True),
    Page(key="/gaps", label="gaps_page_title", search_params_required=True),
    Page(key="/gaps_patterns", label="gaps_patterns_page_title"),
    Page(key="/map", label="realtime_map_page_title"),
    Page(
        key="/single-line-map",
        label="singleline_map_page_title",
        search_params_required=True,
    ),
    Page(key="/about", label="about_title"),
    Page(
        key="https://github.com/hasadna/open-bus-map-search/issues",
        label="report_a_bug_title",
    ),
    Page(
        key="https://www.jgive.com/new/he/ils/donation-targets/3268#donation-modal",
        label="donate_title",
    ),
)

DEFAULT_PAGE = PAGES[0]


def find_page(path: str, pages: tuple[Page, ...] = PAGES) -> Page | None:
    """Return the internal page registered for ``path``, if any."""
    for page in pages:
        if not page.is_external and page.key == path:
            return page
    return None


__all__ = ["Page", "PAGES", "DEFAULT_PAGE", "find_page"]
