from unittest.mock import AsyncMock

import pytest

import content
from navigation import locale_navigation_path, switch_locale_url


@pytest.mark.asyncio
async def test_missing_translation_falls_back_to_list(monkeypatch):
    lookup = AsyncMock(return_value=None)
    monkeypatch.setattr(content, "get_article_by_slug", lookup)

    assert await locale_navigation_path("/news/my-article", "en") == "/news"
    lookup.assert_awaited_once_with("my-article", "en")


@pytest.mark.asyncio
async def test_existing_translation_keeps_detail_page(monkeypatch):
    monkeypatch.setattr(content, "get_slot_by_slug", AsyncMock(return_value={"slug": "book"}))

    assert await locale_navigation_path("/en/slots/book", "uk") == "/slots/book"
    assert await switch_locale_url("/en/slots/book", "uk") == "/uk/slots/book"
    assert await switch_locale_url("/en/slots/book", "it") == "/slots/book"


@pytest.mark.asyncio
async def test_lookup_error_keeps_path(monkeypatch):
    monkeypatch.setattr(content, "get_casino_by_slug", AsyncMock(side_effect=RuntimeError("down")))

    assert await switch_locale_url("/casino-reviews/lucky", "en") == "/en/casino-reviews/lucky"


@pytest.mark.asyncio
async def test_list_and_unknown_pages_are_unchanged(monkeypatch):
    lookup = AsyncMock(return_value=None)
    monkeypatch.setattr(content, "get_bonus_by_slug", lookup)

    assert await switch_locale_url("/bonuses", "en") == "/en/bonuses"
    assert await switch_locale_url("/uk/contacts", "it") == "/contacts"
    assert await switch_locale_url("/sitemap/page/2", "en") == "/en/sitemap/page/2"
    assert await switch_locale_url("/", "uk") == "/uk"
    lookup.assert_not_awaited()


@pytest.mark.asyncio
async def test_missing_translation_uses_target_locale_prefix(monkeypatch):
    monkeypatch.setattr(content, "get_bonus_by_slug", AsyncMock(return_value=None))

    assert await switch_locale_url("/bonuses/welcome-100", "uk") == "/uk/bonuses"
