"""
Locale routing and URL generation.

The default locale is never shown as a URL prefix ("as-needed" routing);
every other locale always is. Canonical URLs collapse every locale variant
onto the default-locale form, while current and alternate URLs keep the
prefix of the locale they describe.
"""

from typing import Dict, List, Optional, Tuple

import config

LOCALES = config.LOCALES
DEFAULT_LOCALE = config.DEFAULT_LOCALE


def resolve_locale(value: Optional[str]) -> str:
    """Supported locale or the default one."""
    if value and value.lower() in LOCALES:
        return value.lower()
    return DEFAULT_LOCALE


def _normalize(path: str) -> str:
    path = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def split_locale(path: str) -> Tuple[str, str]:
    """'/en/slots/x' -> ('en', '/slots/x'); unprefixed paths belong to the default locale."""
    path = _normalize(path)
    head, _, rest = path[1:].partition("/")
    if head in LOCALES:
        return head, "/" + rest if rest else "/"
    return DEFAULT_LOCALE, path


def localize_path(locale: str, path: str) -> str:
    _, clean = split_locale(path)
    locale = resolve_locale(locale)
    if locale == DEFAULT_LOCALE:
        return clean
    return f"/{locale}" if clean == "/" else f"/{locale}{clean}"


def absolute_url(path: str) -> str:
    site = config.get_site_url()
    return site if path == "/" else f"{site}{path}"


def canonical_url(locale: str, path: str) -> str:
    """Same URL for every locale: the default-locale form of `path`."""
    return absolute_url(localize_path(DEFAULT_LOCALE, path))


def current_url(locale: str, path: str) -> str:
    return absolute_url(localize_path(locale, path))


def alternate_urls(path: str) -> Dict[str, str]:
    return {locale: current_url(locale, path) for locale in LOCALES}


def hreflang_links(path: str) -> List[Dict[str, str]]:
    links = [{"hreflang": locale, "href": url} for locale, url in alternate_urls(path).items()]
    links.append({"hreflang": "x-default", "href": canonical_url(DEFAULT_LOCALE, path)})
    return links
