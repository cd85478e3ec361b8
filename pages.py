"""
Page loaders.

Each loader gathers the content a page needs plus its metadata. Detail
loaders return None when the slug does not exist in the requested locale.
"""

import asyncio
from typing import Any, Dict, Optional

import content
import seo
from locales import alternate_urls, resolve_locale


def _page(locale: str, path: str, metadata: Dict[str, Any], **data: Any) -> Dict[str, Any]:
    return {"locale": locale, "path": path, "metadata": metadata, "alternates": alternate_urls(path), **data}


async def home_page(locale: str) -> Dict[str, Any]:
    locale = resolve_locale(locale)
    # one failing section only empties that section
    casinos, slots, articles = await asyncio.gather(
        content.get_casinos(locale),
        content.get_slots(locale),
        content.get_articles(locale),
    )
    return _page(
        locale,
        "/",
        seo.section_metadata(locale, "/"),
        casinos=casinos[:5],
        slots=slots[:8],
        articles=articles[:6],
    )


async def news_page(locale: str) -> Dict[str, Any]:
    locale = resolve_locale(locale)
    articles = await content.get_articles(locale)
    return _page(locale, "/news", seo.section_metadata(locale, "/news"), articles=articles)


async def casino_reviews_page(locale: str) -> Dict[str, Any]:
    locale = resolve_locale(locale)
    casinos = await content.get_casinos(locale)
    return _page(locale, "/casino-reviews", seo.section_metadata(locale, "/casino-reviews"), casinos=casinos)


async def slots_page(locale: str) -> Dict[str, Any]:
    locale = resolve_locale(locale)
    slots = await content.get_slots(locale)
    return _page(locale, "/slots", seo.section_metadata(locale, "/slots"), slots=slots)


async def bonuses_page(locale: str) -> Dict[str, Any]:
    locale = resolve_locale(locale)
    bonuses = await content.get_bonuses({}, locale)
    return _page(locale, "/bonuses", seo.section_metadata(locale, "/bonuses"), bonuses=bonuses)


async def article_page(locale: str, slug: str) -> Optional[Dict[str, Any]]:
    locale = resolve_locale(locale)
    article = await content.get_article_by_slug(slug, locale)
    if article is None:
        return None
    return _page(locale, f"/news/{slug}", seo.article_metadata(locale, slug, article), article=article)


async def casino_page(locale: str, slug: str) -> Optional[Dict[str, Any]]:
    locale = resolve_locale(locale)
    casino = await content.get_casino_by_slug(slug, locale)
    if casino is None:
        return None
    return _page(locale, f"/casino-reviews/{slug}", seo.casino_metadata(locale, slug, casino), casino=casino)


async def slot_page(locale: str, slug: str) -> Optional[Dict[str, Any]]:
    locale = resolve_locale(locale)
    slot = await content.get_slot_by_slug(slug, locale)
    if slot is None:
        return None
    return _page(locale, f"/slots/{slug}", seo.slot_metadata(locale, slug, slot), slot=slot)


async def bonus_page(locale: str, slug: str) -> Optional[Dict[str, Any]]:
    locale = resolve_locale(locale)
    bonus = await content.get_bonus_by_slug(slug, locale)
    if bonus is None:
        return None
    return _page(locale, f"/bonuses/{slug}", seo.bonus_metadata(locale, slug, bonus), bonus=bonus)


LIST_PAGES = {
    "news": news_page,
    "casino-reviews": casino_reviews_page,
    "slots": slots_page,
    "bonuses": bonuses_page,
}

DETAIL_PAGES = {
    "news": article_page,
    "casino-reviews": casino_page,
    "slots": slot_page,
    "bonuses": bonus_page,
}
