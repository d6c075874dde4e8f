"""Tests for the navigation header state and its endpoints."""

from easy_education.services.header import (
    HeaderState,
    ScrollLock,
    nav_links,
    search_url,
)


class TestNavLinks:
    """Navigation entries."""

    def test_community_included_when_enabled(self):
        links = nav_links(community_enabled=True)

        assert [link.name for link in links] == ["Home", "Courses", "Announcements", "Community"]

    def test_community_hidden_when_disabled(self):
        links = nav_links(community_enabled=False)

        assert "/community" not in [link.path for link in links]
        assert len(links) == 3


class TestSidebar:
    """Sidebar and scroll lock."""

    def test_open_locks_scroll(self):
        header = HeaderState()
        header.open_sidebar()

        assert header.sidebar_open
        assert header.scroll_locked

    def test_close_releases_scroll(self):
        header = HeaderState()
        header.open_sidebar()
        header.close_sidebar()

        assert not header.sidebar_open
        assert not header.scroll_locked

    def test_toggle_twice_returns_to_closed(self):
        header = HeaderState()
        header.toggle_sidebar()
        header.toggle_sidebar()

        assert not header.sidebar_open
        assert not header.scroll_locked

    def test_unmount_while_open_releases_lock(self):
        """Tearing the header down never leaves the page scroll-locked."""
        header = HeaderState()
        header.open_sidebar()
        header.unmount()

        assert not header.scroll_locked
        assert not header.sidebar_open

    def test_scroll_lock_context_manager(self):
        lock = ScrollLock()
        with lock:
            assert lock.locked
        assert not lock.locked


class TestSearch:
    """Search box behavior."""

    def test_submit_navigates_and_closes(self):
        header = HeaderState(search_open=True)

        target = header.submit_search("calculus basics")

        assert target == "/courses?search=calculus+basics"
        assert not header.search_open
        assert header.search_query == ""

    def test_blank_query_is_ignored(self):
        header = HeaderState(search_open=True)

        assert header.submit_search("   ") is None
        assert header.search_open

    def test_outside_press_closes_open_box(self):
        header = HeaderState(search_open=True)
        header.pointer_down(inside_search=False)

        assert not header.search_open

    def test_inside_press_keeps_box_open(self):
        header = HeaderState(search_open=True)
        header.pointer_down(inside_search=True)

        assert header.search_open

    def test_outside_press_ignored_while_closed(self):
        header = HeaderState()
        header.pointer_down(inside_search=False)

        assert not header.search_open

    def test_search_url_encodes_query(self):
        assert search_url("c++ & go") == "/courses?search=c%2B%2B+%26+go"


def test_session_round_trip_keeps_lock():
    header = HeaderState()
    header.open_sidebar()

    restored = HeaderState.from_dict(header.to_dict())

    assert restored.sidebar_open
    assert restored.scroll_locked


def test_from_dict_defaults():
    header = HeaderState.from_dict(None)

    assert not header.sidebar_open
    assert not header.search_open
    assert header.search_query == ""


async def test_sidebar_endpoints_render_lock_state(client):
    """Opening the sidebar renders a locked header; closing releases it."""
    from tests.fixtures import csrf_headers

    headers = await csrf_headers(client)

    opened = await client.post("/ui/sidebar/open", headers=headers)
    assert opened.status_code == 200
    assert 'data-scroll-locked="true"' in opened.text

    closed = await client.post("/ui/sidebar/close", headers=headers)
    assert 'data-scroll-locked="false"' in closed.text


async def test_full_page_render_releases_lock(client):
    """Navigating to a new page unmounts the previous header."""
    from tests.fixtures import csrf_headers

    headers = await csrf_headers(client)
    await client.post("/ui/sidebar/open", headers=headers)

    page = await client.get("/announcements")

    assert 'data-scroll-locked="false"' in page.text


async def test_header_shows_community_by_default(client):
    """No stored general settings means the community link is shown."""
    response = await client.get("/announcements")

    assert response.status_code == 200
    assert 'href="/community"' in response.text


async def test_header_hides_community_when_disabled(client, async_session):
    from easy_education.models.site_setting import SiteSetting

    async_session.add(SiteSetting(type="general", data={"communityEnabled": False}))
    await async_session.commit()

    response = await client.get("/announcements")

    assert 'href="/community"' not in response.text


async def test_search_redirects_to_courses(client):
    response = await client.get("/search", params={"q": "physics"}, follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/courses?search=physics"


async def test_search_htmx_uses_hx_redirect(client):
    response = await client.get("/search", params={"q": "physics"}, headers={"HX-Request": "true"})

    assert response.headers["HX-Redirect"] == "/courses?search=physics"


async def test_blank_search_keeps_box_open(client):
    response = await client.get("/search", params={"q": "  "})

    assert response.status_code == 200
    assert 'id="header-search"' in response.text


async def test_open_search_listens_for_outside_pointer_down(client):
    """The outside listener ignores presses on the box and on its toggle button."""
    from tests.fixtures import csrf_headers

    headers = await csrf_headers(client)

    response = await client.post("/ui/search/toggle", headers=headers)

    assert 'id="header-search-toggle"' in response.text
    assert (
        "pointerdown from:document[!event.target.closest('#header-search, #header-search-toggle')]"
        in response.text
    )


async def test_header_renders_when_settings_read_fails(client, test_user):
    """A broken settings query falls back to the default links and leaves the page usable."""
    from unittest.mock import patch

    from sqlalchemy import text

    from tests.fixtures import sign_in

    await sign_in(client, test_user.id)

    async def broken_read(session, flag):
        await session.execute(text("SELECT data FROM no_such_table"))

    with patch("easy_education.services.site_settings.is_feature_enabled", broken_read):
        response = await client.get("/announcements")

    assert response.status_code == 200
    for path in ("/", "/courses", "/announcements", "/community"):
        assert f'href="{path}"' in response.text
    assert "Sign out" in response.text
