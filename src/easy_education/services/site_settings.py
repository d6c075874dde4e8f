"""Site settings documents.

Three singleton documents, distinguished by a `type` discriminator:

    general  - siteName, siteDescription, communityEnabled
    payment  - instructions
    pwa      - appName, appShortName, appIcon, appLogo, themeColor, backgroundColor

Rows are keyed by the discriminator, so saving is an upsert on the primary
key. Loading merges only recognized fields over the defaults below.
"""

import asyncio
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from easy_education.models.site_setting import SiteSetting

logger = structlog.get_logger()

# Absence of configuration means a feature is on. Every reader of a feature
# flag goes through this table instead of testing `is not False` locally.
FEATURE_DEFAULTS: dict[str, bool] = {
    "communityEnabled": True,
}

HEADER_SETTINGS_TIMEOUT_SECONDS = 3.0


class _SettingsDocument(BaseModel):
    """Shared config: camelCase field names, unknown keys dropped."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class GeneralSettings(_SettingsDocument):
    """`general` settings document."""

    site_name: str = Field(default="Easy Education", alias="siteName")
    site_description: str = Field(
        default="Learn from the best educators", alias="siteDescription"
    )
    community_enabled: bool = Field(
        default=FEATURE_DEFAULTS["communityEnabled"], alias="communityEnabled"
    )


class PaymentSettings(_SettingsDocument):
    """`payment` settings document."""

    instructions: str = Field(default="Please pay to 018XXXXXXXX via bKash")


class PwaSettings(_SettingsDocument):
    """`pwa` settings document (manifest and branding)."""

    app_name: str = Field(default="Easy Education - Free Online Courses", alias="appName")
    app_short_name: str = Field(default="Easy Education", alias="appShortName")
    app_icon: str = Field(default="/icon-192x192.png", alias="appIcon")
    app_logo: str = Field(default="/placeholder-logo.png", alias="appLogo")
    theme_color: str = Field(default="#3b82f6", alias="themeColor")
    background_color: str = Field(default="#fcfcfd", alias="backgroundColor")


SETTINGS_TYPES: dict[str, type[_SettingsDocument]] = {
    "general": GeneralSettings,
    "payment": PaymentSettings,
    "pwa": PwaSettings,
}


class SiteSettingsBundle(BaseModel):
    """All three settings documents."""

    general: GeneralSettings = Field(default_factory=GeneralSettings)
    payment: PaymentSettings = Field(default_factory=PaymentSettings)
    pwa: PwaSettings = Field(default_factory=PwaSettings)


def parse_document(settings_type: str, data: dict[str, Any] | None) -> _SettingsDocument:
    """Merge stored fields over the defaults for one settings type.

    Null values count as absent, so they fall back to the default too.
    """
    model = SETTINGS_TYPES[settings_type]
    cleaned = {k: v for k, v in (data or {}).items() if v is not None}
    return model.model_validate(cleaned)


def dump_document(document: _SettingsDocument) -> dict[str, Any]:
    """Serialize a settings document with its stored (camelCase) field names."""
    return document.model_dump(by_alias=True)


async def get_settings_document(session: AsyncSession, settings_type: str) -> _SettingsDocument:
    """Load one settings document, falling back to defaults if absent."""
    row = await session.get(SiteSetting, settings_type)
    return parse_document(settings_type, row.data if row else None)


async def load_site_settings(session: AsyncSession) -> SiteSettingsBundle:
    """Load all settings documents."""
    return SiteSettingsBundle(
        general=await get_settings_document(session, "general"),  # type: ignore[arg-type]
        payment=await get_settings_document(session, "payment"),  # type: ignore[arg-type]
        pwa=await get_settings_document(session, "pwa"),  # type: ignore[arg-type]
    )


async def upsert_settings_document(
    session: AsyncSession, settings_type: str, document: _SettingsDocument
) -> SiteSetting:
    """Insert or update the row for one discriminator.

    A concurrent first save by another admin trips the primary key; in
    that case the row now exists and is updated instead (last write wins).
    """
    data = dump_document(document)

    row = await session.get(SiteSetting, settings_type)
    if row:
        row.data = data
        await session.commit()
        return row

    row = SiteSetting(type=settings_type, data=data)
    session.add(row)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        logger.warning("Settings row created concurrently, updating", type=settings_type)
        row = await session.get(SiteSetting, settings_type)
        if row is None:
            raise
        row.data = data
        await session.commit()
    return row


async def save_site_settings(session: AsyncSession, bundle: SiteSettingsBundle) -> None:
    """Persist all three settings documents."""
    for settings_type in SETTINGS_TYPES:
        await upsert_settings_document(session, settings_type, getattr(bundle, settings_type))
    logger.info("Site settings saved")


def branding_changed(before: PwaSettings, after: PwaSettings) -> bool:
    """Check if any PWA branding field differs."""
    return before.model_dump() != after.model_dump()


async def is_feature_enabled(session: AsyncSession, flag: str) -> bool:
    """Read a `general` feature flag, applying the central default.

    Raises whatever the database raises; callers that must not fail use
    `load_feature_flag`.
    """
    row = await session.get(SiteSetting, "general")
    if row is None or row.data.get(flag) is None:
        return FEATURE_DEFAULTS[flag]
    return bool(row.data[flag])


async def _read_flag(session: AsyncSession, flag: str) -> bool:
    async with AsyncSession(session.bind) as flag_session:
        return await is_feature_enabled(flag_session, flag)


async def load_feature_flag(
    session: AsyncSession,
    flag: str,
    timeout: float = HEADER_SETTINGS_TIMEOUT_SECONDS,
) -> bool:
    """Best-effort feature flag read.

    The read runs in its own short-lived session on the same engine, so a
    failed or cancelled query never leaves the caller's transaction unusable.
    Any failure or timeout is logged and answered with the central default,
    so page rendering is never blocked on the settings store.
    """
    try:
        return await asyncio.wait_for(_read_flag(session, flag), timeout=timeout)
    except Exception as e:
        logger.warning(
            "Failed to load feature flag, using default",
            flag=flag,
            default=FEATURE_DEFAULTS[flag],
            error=str(e) or e.__class__.__name__,
        )
        return FEATURE_DEFAULTS[flag]
