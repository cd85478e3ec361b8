"""
Runtime Configuration

Environment driven settings shared by the CMS API and the site layer.
Values are read from the process environment (and a local .env file).
"""

import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# ----------------------------------------------------------------------------
# CMS API
# ----------------------------------------------------------------------------
JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change")
JWT_ALG = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE", str(60 * 24 * 30)))
ADMIN_SECRET = os.getenv("ADMIN_SECRET")
API_TOKEN = os.getenv("API_TOKEN")

REST_DEFAULT_LIMIT = int(os.getenv("REST_DEFAULT_LIMIT", "25"))
REST_MAX_LIMIT = int(os.getenv("REST_MAX_LIMIT", "100"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("LOG_JSON", "").strip().lower() in {"1", "true", "yes", "on"}

# ----------------------------------------------------------------------------
# Locales
# ----------------------------------------------------------------------------
DEFAULT_LOCALE = "it"
LOCALES = ("it", "en", "uk")

LOCALE_NAMES = {
    "it": "Italiano",
    "en": "English",
    "uk": "Українська",
}

SITE_NAME = "Chicken Road Project"


# ----------------------------------------------------------------------------
# Site (read at call time)
# ----------------------------------------------------------------------------

def get_api_url() -> str:
    return (
        os.getenv("STRAPI_API_URL")
        or os.getenv("NEXT_PUBLIC_STRAPI_API_URL")
        or "http://localhost:1337"
    ).rstrip("/")


def get_api_token():
    return os.getenv("STRAPI_API_TOKEN") or None


def get_site_url() -> str:
    return (os.getenv("NEXT_PUBLIC_SITE_URL") or "http://localhost:3000").rstrip("/")
