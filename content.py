"""
Content queries used by the site.

Every list query supplies its own populate graph, field selection, sort and
pagination. A failed request and an empty result look the same to callers:
lists come back as `[]`, single lookups as `None`.
"""

import logging
from typing import Any, Dict, List, Optional

import config
from api_client import fetch_api
from schemas import coerce_string_list

logger = logging.getLogger(__name__)


async def _fetch_list(path: str, params: Dict[str, Any], entity_name: str) -> List[dict]:
    logger.debug("[%s] Fetching from: %s", entity_name, path)
    response = await fetch_api(path, params)
    data = response.get("data")
    if response.get("error") or not isinstance(data, list) or not data:
        logger.warning("[%s] No data found or API error", entity_name)
        return []
    logger.info("[%s] Fetched %d items", entity_name, len(data))
    return data


async def _fetch_item(
    path: str, slug: str, populate: List[str], entity_name: str, locale: Optional[str]
) -> Optional[dict]:
    params = {
        "populate": populate,
        "filters": {"slug": {"$eq": slug}},
        "locale": locale or config.DEFAULT_LOCALE,
    }
    response = await fetch_api(path, params)
    data = response.get("data")
    if response.get("error") or not isinstance(data, list) or not data or not isinstance(data[0], dict):
        logger.warning("[%s] Item not found: %s", entity_name, slug)
        return None
    return data[0]


async def _fetch_one(path: str, entity_name: str) -> Optional[dict]:
    response = await fetch_api(path)
    if response.get("error"):
        logger.warning("[%s] API error: %s", entity_name, response["error"].get("message"))
        return None
    return response.get("data")


def _page(page_size: int, page: int = 1) -> Dict[str, int]:
    return {"page": page, "pageSize": page_size}


def _locale(locale: Optional[str]) -> str:
    return locale or config.DEFAULT_LOCALE


def _with_filters(params: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Caller filters on top of the query's own."""
    if filters:
        params["filters"] = {**params.get("filters", {}), **filters}
    return params


# ===================== ARTICLES =====================

ARTICLE_LIST_FIELDS = ["title", "slug", "excerpt", "createdAt", "author", "reading_time", "is_featured", "view_count"]


async def get_articles(
    locale: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
    filters: Optional[Dict[str, Any]] = None,
) -> List[dict]:
    params = {
        "populate": ["preview_image", "category"],
        "fields": ARTICLE_LIST_FIELDS,
        "pagination": _page(page_size, page),
        "sort": "createdAt:desc",
        "locale": _locale(locale),
    }
    return await _fetch_list("/api/articles", _with_filters(params, filters), "Articles")


async def get_article_by_slug(slug: str, locale: Optional[str] = None) -> Optional[dict]:
    return await _fetch_item("/api/articles", slug, ["preview_image", "category", "comments"], "Article", locale)


async def get_featured_articles(locale: Optional[str] = None, limit: int = 6) -> List[dict]:
    params = {
        "populate": ["preview_image", "category"],
        "filters": {"is_featured": True},
        "fields": ["title", "slug", "excerpt", "createdAt", "author"],
        "pagination": {"limit": limit},
        "sort": "createdAt:desc",
        "locale": _locale(locale),
    }
    return await _fetch_list("/api/articles", params, "Featured Articles")


async def get_popular_articles(locale: Optional[str] = None, limit: int = 6) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list("/api/articles/popular", params, "Popular Articles")


# ===================== CASINOS =====================

def normalize_casino(casino: dict) -> dict:
    """Pros and cons as lists whatever shape the entry was stored in."""
    casino = dict(casino)
    for key in ("pros", "cons"):
        casino[key] = coerce_string_list(casino.get(key))
    return casino


async def get_casinos(
    locale: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
    filters: Optional[Dict[str, Any]] = None,
) -> List[dict]:
    params = {
        "populate": ["logo"],
        "fields": ["name", "shortDescription", "slug", "rating", "bonus_text", "pros", "cons"],
        "pagination": _page(page_size, page),
        "sort": "rating:desc",
        "locale": _locale(locale),
    }
    casinos = await _fetch_list("/api/casino-reviews", _with_filters(params, filters), "Casinos")
    return [normalize_casino(c) for c in casinos]


async def get_casino_by_slug(slug: str, locale: Optional[str] = None) -> Optional[dict]:
    casino = await _fetch_item("/api/casino-reviews", slug, ["logo", "bonuses", "comments"], "Casino", locale)
    return normalize_casino(casino) if casino else None


async def get_top_rated_casinos(locale: Optional[str] = None, limit: int = 10) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    casinos = await _fetch_list("/api/casino-reviews/top-rated", params, "Top Rated Casinos")
    return [normalize_casino(c) for c in casinos]


async def get_casinos_by_license(license_name: str, locale: Optional[str] = None) -> List[dict]:
    casinos = await _fetch_list(
        f"/api/casino-reviews/license/{license_name}", {"locale": _locale(locale)}, "Casinos By License"
    )
    return [normalize_casino(c) for c in casinos]


# ===================== SLOTS =====================

SLOT_LIST_FIELDS = ["name", "description", "slug", "provider", "rating", "rtp", "volatility"]


async def get_slots(
    locale: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
    filters: Optional[Dict[str, Any]] = None,
) -> List[dict]:
    params = {
        "populate": ["cover_image", "category"],
        "fields": SLOT_LIST_FIELDS,
        "pagination": _page(page_size, page),
        "sort": "rating:desc",
        "locale": _locale(locale),
    }
    return await _fetch_list("/api/slots", _with_filters(params, filters), "Slots")


async def get_slot_by_slug(slug: str, locale: Optional[str] = None) -> Optional[dict]:
    return await _fetch_item("/api/slots", slug, ["cover_image", "category", "comments"], "Slot", locale)


async def get_popular_slots(locale: Optional[str] = None, limit: int = 6) -> List[dict]:
    params = {
        "populate": ["cover_image"],
        "filters": {"is_popular": True},
        "fields": ["name", "slug", "provider", "rating", "rtp"],
        "pagination": {"limit": limit},
        "sort": "rating:desc",
        "locale": _locale(locale),
    }
    return await _fetch_list("/api/slots", params, "Popular Slots")


async def get_high_rtp_slots(locale: Optional[str] = None, limit: int = 12) -> List[dict]:
    params = {
        "populate": ["cover_image"],
        "filters": {"rtp": {"$gte": 96}},
        "fields": ["name", "slug", "provider", "rating", "rtp"],
        "pagination": _page(limit),
        "sort": "rtp:desc",
        "locale": _locale(locale),
    }
    return await _fetch_list("/api/slots", params, "High RTP Slots")


async def get_slots_by_provider(provider: str, locale: Optional[str] = None) -> List[dict]:
    return await _fetch_list(f"/api/slots/provider/{provider}", {"locale": _locale(locale)}, "Slots By Provider")


# ===================== CATEGORIES =====================

async def get_categories(locale: Optional[str] = None, filters: Optional[Dict[str, Any]] = None) -> List[dict]:
    params = {
        "populate": ["icon"],
        "fields": ["name", "slug", "description", "color", "is_featured", "sort_order"],
        "sort": "sort_order:asc,name:asc",
        "locale": _locale(locale),
    }
    return await _fetch_list("/api/categories", _with_filters(params, filters), "Categories")


async def get_featured_categories(locale: Optional[str] = None, limit: int = 6) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list("/api/categories/featured", params, "Featured Categories")


async def get_category_by_slug(slug: str, locale: Optional[str] = None) -> Optional[dict]:
    return await _fetch_item("/api/categories", slug, ["icon", "articles", "slots"], "Category", locale)


async def get_category_stats(category_id: str) -> Optional[dict]:
    return await _fetch_one(f"/api/categories/{category_id}/stats", "Category Stats")


# ===================== BONUSES =====================

BONUS_FIELDS = ["name", "slug", "bonus_type", "bonus_amount", "promo_code", "valid_until"]


async def get_bonuses(filters: Optional[Dict[str, Any]] = None, locale: Optional[str] = None) -> List[dict]:
    """Bonus list; `filters` may carry `bonus_type` and `casino_review` (an id)."""
    filters = filters or {}
    params: Dict[str, Any] = {
        "populate": ["casino_review.logo"],
        "fields": BONUS_FIELDS,
        "pagination": _page(20),
        "sort": "createdAt:desc",
        "locale": _locale(locale),
    }
    query: Dict[str, Any] = {}
    if filters.get("bonus_type"):
        query["bonus_type"] = filters["bonus_type"]
    if filters.get("casino_review"):
        query["casino_review"] = {"id": filters["casino_review"]}
    if query:
        params["filters"] = query
    return await _fetch_list("/api/bonuses", params, "Bonuses")


async def get_bonus_by_slug(slug: str, locale: Optional[str] = None) -> Optional[dict]:
    return await _fetch_item("/api/bonuses", slug, ["casino_review.logo"], "Bonus", locale)


async def get_bonuses_by_type(bonus_type: str, locale: Optional[str] = None, limit: int = 10) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list(f"/api/bonuses/type/{bonus_type}", params, f"{bonus_type} Bonuses")


async def get_featured_bonuses(locale: Optional[str] = None, limit: int = 6) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list("/api/bonuses/featured", params, "Featured Bonuses")


async def get_bonuses_by_casino(casino_id: str, locale: Optional[str] = None) -> List[dict]:
    return await _fetch_list(f"/api/bonuses/casino/{casino_id}", {"locale": _locale(locale)}, "Casino Bonuses")


# ===================== COMMENTS =====================

async def get_comments(filters: Optional[Dict[str, Any]] = None, locale: Optional[str] = None) -> List[dict]:
    """Published comments; `filters` may carry a parent id and a minimum `rating`."""
    filters = filters or {}
    params: Dict[str, Any] = {
        "populate": ["casino_review", "article", "slot"],
        "fields": ["text", "author_name", "rating", "createdAt"],
        "pagination": _page(20),
        "sort": "createdAt:desc",
        "locale": _locale(locale),
    }
    query: Dict[str, Any] = {}
    for parent in ("casino_review", "article", "slot"):
        if filters.get(parent):
            query[parent] = {"id": filters[parent]}
    if filters.get("rating"):
        query["rating"] = {"$gte": filters["rating"]}
    if query:
        params["filters"] = query
    return await _fetch_list("/api/comments", params, "Comments")


async def get_comments_by_casino(casino_id: str, locale: Optional[str] = None, limit: int = 10) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list(f"/api/comments/casino/{casino_id}", params, "Casino Comments")


async def get_comments_by_article(article_id: str, locale: Optional[str] = None, limit: int = 10) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list(f"/api/comments/article/{article_id}", params, "Article Comments")


async def get_comments_by_slot(slot_id: str, locale: Optional[str] = None, limit: int = 10) -> List[dict]:
    params = {"limit": limit, "locale": _locale(locale)}
    return await _fetch_list(f"/api/comments/slot/{slot_id}", params, "Slot Comments")


async def create_comment(comment: Dict[str, Any], locale: Optional[str] = None) -> Optional[dict]:
    """Submit a visitor comment. The CMS stores it as pending whatever is sent."""
    payload = {**comment, "locale": _locale(comment.get("locale") or locale)}
    response = await fetch_api("/api/comments", method="POST", json={"data": payload})
    if response.get("error"):
        logger.error("Error creating comment: %s", response["error"].get("message"))
        return None
    return response.get("data")


async def get_comments_stats() -> Optional[dict]:
    return await _fetch_one("/api/comments/stats", "Comments Stats")
