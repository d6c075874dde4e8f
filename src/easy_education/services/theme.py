"""Theme preference store.

The preference is two-valued (dark/light), persisted under the `theme` key
of a durable client-side store (the `theme` cookie in the web layer) and
reflected onto the class list of the root `<html>` element.
"""

from collections.abc import MutableMapping
from enum import Enum

THEME_STORAGE_KEY = "theme"
THEME_COOKIE_MAX_AGE = 365 * 24 * 60 * 60  # 1 year


class ThemePreference(str, Enum):
    """UI color scheme."""

    DARK = "dark"
    LIGHT = "light"

    @property
    def opposite(self) -> "ThemePreference":
        """The other theme."""
        return ThemePreference.LIGHT if self is ThemePreference.DARK else ThemePreference.DARK


DEFAULT_THEME = ThemePreference.DARK


class ThemeStore:
    """Read and flip the persisted theme preference.

    Args:
        storage: Mutable string mapping used as the durable store. The web
            layer passes a copy of the request cookies and writes the changed
            key back as a cookie.
    """

    def __init__(self, storage: MutableMapping[str, str]) -> None:
        self.storage = storage

    def get_theme(self) -> ThemePreference:
        """Get the persisted theme, defaulting to dark."""
        try:
            return ThemePreference(self.storage.get(THEME_STORAGE_KEY, DEFAULT_THEME.value))
        except ValueError:
            return DEFAULT_THEME

    def toggle_theme(self) -> ThemePreference:
        """Flip the theme and persist it.

        Returns:
            The new theme
        """
        theme = self.get_theme().opposite
        self.storage[THEME_STORAGE_KEY] = theme.value
        return theme

    def apply(self, root_classes: set[str]) -> set[str]:
        """Reflect the current theme onto a root element's class list."""
        theme = self.get_theme()
        root_classes.discard(theme.opposite.value)
        root_classes.add(theme.value)
        return root_classes

    @property
    def is_dark(self) -> bool:
        """Check if the dark theme is active."""
        return self.get_theme() is ThemePreference.DARK
