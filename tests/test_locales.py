import pytest

from locales import (
    alternate_urls,
    canonical_url,
    current_url,
    hreflang_links,
    localize_path,
    resolve_locale,
    split_locale,
)

SITE = "https://chickenroad.test"


@pytest.fixture(autouse=True)
def site_url(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("NEXT_PUBLIC_SITE_URL", SITE + "/")


def test_resolve_locale():
    assert resolve_locale("en") == "en"
    assert resolve_locale("UK") == "uk"
    assert resolve_locale("fr") == "it"
    assert resolve_locale(None) == "it"


def test_split_locale():
    assert split_locale("/en/slots/book") == ("en", "/slots/book")
    assert split_locale("/uk") == ("uk", "/")
    assert split_locale("/slots/book/") == ("it", "/slots/book")
    assert split_locale("/english/news") == ("it", "/english/news")
    assert split_locale("") == ("it", "/")


def test_localize_path_is_as_needed():
    assert localize_path("it", "/news") == "/news"
    assert localize_path("en", "/news") == "/en/news"
    assert localize_path("uk", "/") == "/uk"
    assert localize_path("it", "/en/news") == "/news"
    assert localize_path("en", "/uk/news") == "/en/news"


def test_canonical_is_the_same_for_every_locale():
    path = "/casino-reviews/foo"

    assert canonical_url("uk", path) == canonical_url("en", path) == canonical_url("it", path)
    assert canonical_url("uk", path) == f"{SITE}/casino-reviews/foo"


def test_current_url_differs_by_prefix():
    path = "/casino-reviews/foo"

    assert current_url("it", path) == f"{SITE}/casino-reviews/foo"
    assert current_url("en", path) == f"{SITE}/en/casino-reviews/foo"
    assert current_url("uk", path) == f"{SITE}/uk/casino-reviews/foo"


def test_root_urls():
    assert canonical_url("en", "/") == SITE
    assert current_url("en", "/") == f"{SITE}/en"


def test_alternates_and_hreflang():
    assert alternate_urls("/slots") == {
        "it": f"{SITE}/slots",
        "en": f"{SITE}/en/slots",
        "uk": f"{SITE}/uk/slots",
    }
    links = hreflang_links("/slots")
    assert links[-1] == {"hreflang": "x-default", "href": f"{SITE}/slots"}
    assert [link["hreflang"] for link in links] == ["it", "en", "uk", "x-default"]
