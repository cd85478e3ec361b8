"""
Locale switching.

When a visitor changes language on a detail page the same slug may not
exist in the target locale. The slug is looked up first; a missing
translation sends the visitor to the section's list page instead.
"""

import logging

import content
from locales import localize_path, resolve_locale, split_locale

logger = logging.getLogger(__name__)

# URL section -> by-slug lookup in the content layer
CONTENT_TYPES = {
    "news": "get_article_by_slug",
    "bonuses": "get_bonus_by_slug",
    "casino-reviews": "get_casino_by_slug",
    "slots": "get_slot_by_slug",
}


async def locale_navigation_path(pathname: str, target_locale: str) -> str:
    """Unprefixed path to show in `target_locale` for the page at `pathname`."""
    _, path = split_locale(pathname)
    segments = [segment for segment in path.split("/") if segment]
    if len(segments) != 2 or segments[0] not in CONTENT_TYPES:
        return path

    section, slug = segments
    lookup = getattr(content, CONTENT_TYPES[section])
    try:
        item = await lookup(slug, resolve_locale(target_locale))
    except Exception as e:
        logger.warning("Locale check failed for %s (%s): %s", path, target_locale, e)
        return path

    if item is None:
        logger.info("No %s translation for %s, falling back to /%s", target_locale, path, section)
        return f"/{section}"
    return path


async def switch_locale_url(pathname: str, target_locale: str) -> str:
    locale = resolve_locale(target_locale)
    return localize_path(locale, await locale_navigation_path(pathname, locale))
