"""Navigation header state.

The header owns three pieces of UI state (sidebar open, search box open,
search text) and one resource: the background scroll lock held while the
sidebar is open. The web layer keeps a `HeaderState` per visitor session and
renders it into the header partial.
"""

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode


@dataclass(frozen=True)
class NavLink:
    """A top navigation entry."""

    name: str
    path: str
    icon: str


BASE_NAV_LINKS: tuple[NavLink, ...] = (
    NavLink(name="Home", path="/", icon="home"),
    NavLink(name="Courses", path="/courses", icon="book-open"),
    NavLink(name="Announcements", path="/announcements", icon="newspaper"),
)
COMMUNITY_LINK = NavLink(name="Community", path="/community", icon="users")


def nav_links(community_enabled: bool) -> list[NavLink]:
    """Build the navigation entries for the current feature flags."""
    links = list(BASE_NAV_LINKS)
    if community_enabled:
        links.append(COMMUNITY_LINK)
    return links


def search_url(query: str) -> str:
    """Course listing URL for a search query."""
    return f"/courses?{urlencode({'search': query})}"


class ScrollLock:
    """Background scroll lock.

    `acquire` and `release` are idempotent, so every close path can call
    `release` without tracking who locked first.
    """

    def __init__(self, locked: bool = False) -> None:
        self._locked = locked

    @property
    def locked(self) -> bool:
        return self._locked

    def acquire(self) -> None:
        self._locked = True

    def release(self) -> None:
        self._locked = False

    def __enter__(self) -> "ScrollLock":
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


@dataclass
class HeaderState:
    """Sidebar, search box and search query of one header instance."""

    sidebar_open: bool = False
    search_open: bool = False
    search_query: str = ""
    scroll_lock: ScrollLock = field(default_factory=ScrollLock)

    # Sidebar

    def open_sidebar(self) -> None:
        self.sidebar_open = True
        self.scroll_lock.acquire()

    def close_sidebar(self) -> None:
        """Close the sidebar (close button, overlay click, link click)."""
        self.sidebar_open = False
        self.scroll_lock.release()

    def toggle_sidebar(self) -> None:
        if self.sidebar_open:
            self.close_sidebar()
        else:
            self.open_sidebar()

    # Search

    def toggle_search(self) -> None:
        self.search_open = not self.search_open

    def pointer_down(self, inside_search: bool) -> None:
        """Handle a pointer-down anywhere on the document.

        Only acts while the search box is open; a press outside it closes it.
        """
        if self.search_open and not inside_search:
            self.search_open = False

    def submit_search(self, query: str | None = None) -> str | None:
        """Submit the search box.

        Blank queries are ignored: nothing navigates and the box stays open.

        Returns:
            URL to navigate to, or None for a blank query
        """
        if query is not None:
            self.search_query = query
        if not self.search_query.strip():
            return None

        target = search_url(self.search_query)
        self.search_open = False
        self.search_query = ""
        return target

    # Lifecycle

    def unmount(self) -> None:
        """Tear the header down, releasing the scroll lock unconditionally."""
        self.sidebar_open = False
        self.search_open = False
        self.scroll_lock.release()

    @property
    def scroll_locked(self) -> bool:
        return self.scroll_lock.locked

    def to_dict(self) -> dict[str, Any]:
        """Serialize for session storage."""
        return {
            "sidebar_open": self.sidebar_open,
            "search_open": self.search_open,
            "search_query": self.search_query,
            "scroll_locked": self.scroll_lock.locked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "HeaderState":
        """Restore from session storage."""
        data = data or {}
        return cls(
            sidebar_open=bool(data.get("sidebar_open", False)),
            search_open=bool(data.get("search_open", False)),
            search_query=str(data.get("search_query", "")),
            scroll_lock=ScrollLock(locked=bool(data.get("scroll_locked", False))),
        )
