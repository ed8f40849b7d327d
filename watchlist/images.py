# watchlist/images.py
import base64
import logging
import os
from typing import List, Optional, Sequence

import requests

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
TMDB_SEARCH_URL = "https://api.themoviedb.org/3/search/tv"
TMDB_POSTER_URL = "https://image.tmdb.org/t/p/w500"
DEFAULT_TIMEOUT = 5.0

_PLACEHOLDER_SVG = """<svg width="300" height="450" viewBox="0 0 300 450" xmlns="http://www.w3.org/2000/svg">
<rect width="300" height="450" fill="#1F2937"/>
<g transform="translate(150, 225)"><g transform="scale(2.5) translate(-50, -25)">
<path d="M0 0h100v50H0z" fill="#000"/>
<circle cx="15" cy="15" r="3" fill="#E53E3E"/>
<circle cx="25" cy="15" r="3" fill="#38A169"/>
<circle cx="35" cy="15" r="3" fill="#D69E2E"/>
<circle cx="45" cy="15" r="3" fill="#3182CE"/>
<path d="M20 25c0 5 5 10 15 10s15-5 15-10" stroke="white" stroke-width="2" fill="none"/>
</g></g>
<text x="150" y="320" text-anchor="middle" fill="#9CA3AF" font-family="Arial, sans-serif" font-size="14" font-weight="bold">No Image Available</text>
</svg>"""

PLACEHOLDER_IMAGE = "data:image/svg+xml;base64," + base64.b64encode(_PLACEHOLDER_SVG.encode("utf-8")).decode("ascii")

# --- Exceptions ---
class ProviderUnavailable(Exception):
    """Provider is not configured (missing credentials). Not an error condition."""
    pass

def _env(*names: str) -> str:
    for n in names:
        v = os.environ.get(n)
        if v:
            return v
    return ""

# --- Providers ---
class ImageProvider:
    """A single lookup strategy: title -> poster url, or None on a miss."""
    name = "provider"

    def lookup(self, title: str) -> Optional[str]:
        raise NotImplementedError

class GoogleImageProvider(ImageProvider):
    name = "google"

    def __init__(self, api_key: str, search_engine_id: str, timeout: float = DEFAULT_TIMEOUT):
        self.api_key = api_key
        self.search_engine_id = search_engine_id
        self.timeout = timeout

    def lookup(self, title: str) -> Optional[str]:
        if not self.api_key or not self.search_engine_id:
            raise ProviderUnavailable("Google API credentials not available")
        params = {
            "key": self.api_key,
            "cx": self.search_engine_id,
            "q": f"{title} TV show poster",
            "searchType": "image",
            "imgType": "photo",
            "imgSize": "medium",
            "num": 1,
        }
        response = requests.get(GOOGLE_SEARCH_URL, params=params, timeout=self.timeout)
        response.raise_for_status()
        items = response.json().get("items") or []
        if items and items[0].get("link"):
            return items[0]["link"]
        return None

class TmdbPosterProvider(ImageProvider):
    name = "tmdb"

    def __init__(self, api_key: str, timeout: float = DEFAULT_TIMEOUT):
        self.api_key = api_key
        self.timeout = timeout

    def lookup(self, title: str) -> Optional[str]:
        if not self.api_key:
            raise ProviderUnavailable("TMDB API key not available")
        response = requests.get(TMDB_SEARCH_URL, params={"api_key": self.api_key, "query": title},
                                timeout=self.timeout)
        response.raise_for_status()
        results = response.json().get("results") or []
        if results and results[0].get("poster_path"):
            return f"{TMDB_POSTER_URL}{results[0]['poster_path']}"
        return None

# --- Resolver ---
class ImageResolver:
    """
    Tries each provider in order and returns the first hit.
    resolve() never raises: a provider that fails for any reason is logged
    and skipped, and the placeholder is returned when nothing matches.
    """

    def __init__(self, providers: Sequence[ImageProvider], placeholder: str = PLACEHOLDER_IMAGE):
        self.providers: List[ImageProvider] = list(providers)
        self.placeholder = placeholder

    def resolve(self, title: str) -> str:
        for p in self.providers:
            try:
                url = p.lookup(title)
            except ProviderUnavailable as e:
                logger.info("%s skipped: %s", p.name, e)
                continue
            except Exception as e:
                logger.warning("%s lookup failed for %r: %s", p.name, title, e)
                continue
            if url:
                logger.debug("%s resolved image for %r", p.name, title)
                return url
            logger.debug("%s found no image for %r", p.name, title)
        logger.info("No provider image for %r, using placeholder", title)
        return self.placeholder

def build_default_resolver(timeout: float = DEFAULT_TIMEOUT) -> ImageResolver:
    """Google image search first, then TMDB, credentials from the environment."""
    google = GoogleImageProvider(
        _env("GOOGLE_API_KEY", "VITE_GOOGLE_API_KEY"),
        _env("GOOGLE_SEARCH_ENGINE_ID", "VITE_GOOGLE_SEARCH_ENGINE_ID"),
        timeout=timeout,
    )
    tmdb = TmdbPosterProvider(_env("TMDB_API_KEY", "VITE_TMDB_API_KEY"), timeout=timeout)
    return ImageResolver([google, tmdb])
