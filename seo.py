"""
Page metadata: title, description, canonical and hreflang alternates,
Open Graph and Twitter cards.
"""

from typing import Any, Dict, List, Optional

import config
from api_client import get_strapi_url
from locales import DEFAULT_LOCALE, alternate_urls, canonical_url, current_url

DESCRIPTION_LENGTH = 160

SECTIONS = {
    "/": ("Home", "Best online casinos and slots reviews. Find top bonuses and games."),
    "/news": ("News", "Latest casino and gambling news, reviews and updates."),
    "/casino-reviews": ("Casino Reviews", "Honest online casino reviews with ratings, bonuses and payout details."),
    "/slots": ("Slots", "Best online slots reviews, ratings and where to play them with bonuses."),
    "/bonuses": ("Casino Bonuses", "Current casino bonuses, free spins and promo codes."),
}


def truncate(text: Optional[str], length: int = DESCRIPTION_LENGTH) -> Optional[str]:
    if not text:
        return None
    text = " ".join(text.split())
    if len(text) <= length:
        return text
    return text[:length] + "..."


def media_url(media: Optional[Dict[str, Any]]) -> Optional[str]:
    if not media or not media.get("url"):
        return None
    return get_strapi_url(media["url"])


def not_found(kind: str) -> Dict[str, Any]:
    return {"title": f"{kind} Not Found | {config.SITE_NAME}"}


def build_metadata(
    locale: str,
    path: str,
    title: str,
    description: Optional[str],
    og_title: Optional[str] = None,
    og_type: str = "website",
    image: Optional[str] = None,
    image_alt: Optional[str] = None,
    extra_og: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    images: Optional[List[Dict[str, Any]]] = None
    if image:
        images = [{"url": image, "width": 1200, "height": 630, "alt": image_alt or og_title or title}]

    open_graph = {
        "title": og_title or title,
        "description": description,
        "url": current_url(locale, path),
        "siteName": config.SITE_NAME,
        "locale": locale,
        "type": og_type,
    }
    if images:
        open_graph["images"] = images
    if extra_og:
        open_graph.update(extra_og)

    twitter = {"card": "summary_large_image", "title": og_title or title, "description": description}
    if image:
        twitter["images"] = [image]

    return {
        "title": title,
        "description": description,
        "alternates": {
            "canonical": canonical_url(locale, path),
            "languages": {**alternate_urls(path), "x-default": canonical_url(DEFAULT_LOCALE, path)},
        },
        "openGraph": open_graph,
        "twitter": twitter,
    }


def section_metadata(locale: str, path: str) -> Dict[str, Any]:
    """Home and list pages."""
    name, description = SECTIONS[path]
    return build_metadata(locale, path, f"{name} | {config.SITE_NAME}", description)


def article_metadata(locale: str, slug: str, article: Optional[dict]) -> Dict[str, Any]:
    if not article:
        return not_found("Article")
    description = (
        article.get("meta_description")
        or truncate(article.get("excerpt") or article.get("content"))
        or "Read the latest casino and gambling news."
    )
    preview = article.get("preview_image")
    return build_metadata(
        locale,
        f"/news/{slug}",
        article.get("meta_title") or f"{article['title']} | {config.SITE_NAME}",
        description,
        og_title=article["title"],
        og_type="article",
        image=media_url(preview),
        image_alt=(preview or {}).get("alternativeText"),
        extra_og={
            "publishedTime": article.get("publishedAt") or article.get("createdAt"),
            "authors": [article.get("author") or "Chicken Road Team"],
        },
    )


def casino_metadata(locale: str, slug: str, casino: Optional[dict]) -> Dict[str, Any]:
    if not casino:
        return not_found("Casino Review")
    name = casino["name"]
    description = (
        casino.get("meta_description")
        or truncate(casino.get("detailed_review") or casino.get("description"))
        or f"Complete review of {name} casino with bonuses, games and ratings."
    )
    logo = casino.get("logo")
    return build_metadata(
        locale,
        f"/casino-reviews/{slug}",
        casino.get("meta_title") or f"{name} Review | {config.SITE_NAME}",
        description,
        og_title=f"{name} Review",
        og_type="article",
        image=media_url(logo),
        image_alt=(logo or {}).get("alternativeText") or f"{name} logo",
    )


def slot_metadata(locale: str, slug: str, slot: Optional[dict]) -> Dict[str, Any]:
    if not slot:
        return not_found("Slot")
    name = slot["name"]
    provider = f" by {slot['provider']}" if slot.get("provider") else ""
    description = (
        slot.get("meta_description")
        or truncate(slot.get("description"))
        or f"Play {name}{provider}: RTP, volatility, bets and where to play."
    )
    cover = slot.get("cover_image")
    return build_metadata(
        locale,
        f"/slots/{slug}",
        slot.get("meta_title") or f"{name} Slot Review | {config.SITE_NAME}",
        description,
        og_title=name,
        image=media_url(cover),
        image_alt=(cover or {}).get("alternativeText"),
    )


def bonus_metadata(locale: str, slug: str, bonus: Optional[dict]) -> Dict[str, Any]:
    if not bonus:
        return not_found("Bonus")
    name = bonus["name"]
    casino = bonus.get("casino_review") or {}
    at = f" at {casino['name']}" if casino.get("name") else ""
    description = (
        bonus.get("meta_description")
        or truncate(bonus.get("terms"))
        or f"{name}{at}: amount, wagering requirements and promo code."
    )
    logo = casino.get("logo")
    return build_metadata(
        locale,
        f"/bonuses/{slug}",
        bonus.get("meta_title") or f"{name} | {config.SITE_NAME}",
        description,
        og_title=name,
        image=media_url(logo),
        image_alt=(logo or {}).get("alternativeText"),
    )
