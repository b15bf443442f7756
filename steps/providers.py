"""External data providers selected by the workflow action.

Each fetcher either returns display text or raises
:class:`UpstreamProviderError` carrying the placeholder to show instead.
:class:`ProviderDispatcher` is the only place that turns failures into text.
"""
from __future__ import annotations

import logging
import math
import traceback
from datetime import date, datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Optional

import requests

from steps.actions import Action, ActionKind
from steps.errors import UpstreamProviderError

if TYPE_CHECKING:
    from backend.settings import Settings

logger = logging.getLogger(__name__)

WEATHER_URL = "https://api.weatherapi.com/v1/current.json"
GITHUB_SEARCH_URL = "https://api.github.com/search/repositories"
NEWS_URL = "https://newsapi.org/v2/top-headlines"

WEATHER_KEY_MISSING = "Weather data unavailable (OPENWEATHER_API_KEY missing)."
NEWS_KEY_MISSING = "News API key missing"
NO_TRENDING_REPOS = "No trending repos found."
NO_HEADLINES = "No top headlines found"

TRENDING_WINDOW_DAYS = 7
TRENDING_PAGE_SIZE = 5
TRENDING_SHOWN = 3


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _error_message(resp) -> Optional[str]:
    try:
        data = resp.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    if data.get("message"):
        return data["message"]
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return None


def _payload(resp, provider: str) -> dict:
    data = resp.json()
    if not isinstance(data, dict):
        raise UpstreamProviderError(f"{provider} returned an unexpected response")
    return data


def _as_dict(value: Any, provider: str) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise UpstreamProviderError(f"{provider} returned an unexpected response")
    return value


def _as_list(value: Any, provider: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise UpstreamProviderError(f"{provider} returned an unexpected response")
    return value


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class WeatherFetcher:
    def __init__(self, settings: Settings, http: Any = requests):
        self.settings = settings
        self.http = http

    def resolve_location(self, location: Optional[str]) -> str:
        if location and location.strip():
            return location.strip()
        return self.settings.default_city

    def fetch(self, location: Optional[str] = None) -> str:
        city = self.resolve_location(location)
        key = self.settings.weather_api_key
        if not key:
            raise UpstreamProviderError(WEATHER_KEY_MISSING)

        resp = self.http.get(
            WEATHER_URL,
            params={"key": key, "q": city, "aqi": "no"},
            timeout=self.settings.request_timeout,
        )
        if not resp.ok:
            raise UpstreamProviderError(
                _error_message(resp) or f"Weather fetch failed with status {resp.status_code}"
            )

        current = _as_dict(_payload(resp, "Weather API").get("current"), "Weather API")
        desc = _as_dict(current.get("condition"), "Weather API").get("text") or "Weather"
        temp_c = current.get("temp_c") or 0
        if not isinstance(desc, str) or isinstance(temp_c, bool) or not isinstance(temp_c, (int, float)):
            raise UpstreamProviderError("Weather API returned an unexpected response")
        return f"{capitalize(desc)} in {city}, {round_half_up(temp_c)}°C"


class TrendingReposFetcher:
    """Approximate trending repositories: most starred among those created this week."""

    def __init__(self, settings: Settings, http: Any = requests, today: Callable[[], date] = _utc_today):
        self.settings = settings
        self.http = http
        self.today = today

    def query(self) -> str:
        since = self.today() - timedelta(days=TRENDING_WINDOW_DAYS)
        return f"created:>{since.isoformat()}"

    def fetch(self, location: Optional[str] = None) -> str:
        headers = {}
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        resp = self.http.get(
            GITHUB_SEARCH_URL,
            params={
                "q": self.query(),
                "sort": "stars",
                "order": "desc",
                "per_page": TRENDING_PAGE_SIZE,
            },
            headers=headers,
            timeout=self.settings.request_timeout,
        )
        if not resp.ok:
            raise UpstreamProviderError(f"GitHub fetch failed: {resp.status_code} {resp.text}")

        items = _as_list(_payload(resp, "GitHub API").get("items"), "GitHub API")
        if not items:
            return NO_TRENDING_REPOS
        top_items = [_as_dict(it, "GitHub API") for it in items[:TRENDING_SHOWN]]
        top = ", ".join(
            f"{it.get('full_name')} ({it.get('stargazers_count')}★)" for it in top_items
        )
        return f"Trending: {top}"


class NewsFetcher:
    def __init__(self, settings: Settings, http: Any = requests):
        self.settings = settings
        self.http = http

    def fetch(self, location: Optional[str] = None) -> str:
        key = self.settings.newsapi_key
        if not key:
            raise UpstreamProviderError(NEWS_KEY_MISSING)
        resp = self.http.get(
            NEWS_URL,
            params={"country": "us", "pageSize": 3, "apiKey": key},
            timeout=self.settings.request_timeout,
        )
        if not resp.ok:
            raise UpstreamProviderError(_error_message(resp) or f"News fetch failed: {resp.status_code}")

        articles = _as_list(_payload(resp, "News API").get("articles"), "News API")
        if not articles:
            return NO_HEADLINES
        top = _as_dict(articles[0], "News API")
        source = _as_dict(top.get("source"), "News API").get("name") or "source"
        return f"{top.get('title')} — {source}"


def unknown_action_message(raw: str) -> str:
    return f'Unknown action "{raw}". Supported: weather, github, news.'


class ProviderDispatcher:
    def __init__(self, settings: Settings, http: Any = requests, fetchers: Optional[dict] = None):
        self.fetchers = fetchers or {
            ActionKind.WEATHER: WeatherFetcher(settings, http),
            ActionKind.GITHUB: TrendingReposFetcher(settings, http),
            ActionKind.NEWS: NewsFetcher(settings, http),
        }

    def fetch(self, action: Action, location: Optional[str] = None) -> str:
        """Return provider text for *action*; never raises for provider failures."""
        logger.info("Starting provider fetch for action=%s", action.raw)
        fetcher = self.fetchers.get(action.kind)
        if fetcher is None:
            return unknown_action_message(action.raw)
        try:
            result = fetcher.fetch(location)
            logger.info("Provider fetch for %s succeeded", action.kind.value)
            return result
        except UpstreamProviderError as e:
            logger.warning("Provider %s degraded: %s", action.kind.value, e.message)
            return e.message
        except (requests.RequestException, ValueError, AttributeError, TypeError, KeyError) as e:
            logger.error("Error in provider %s: %s\n%s", action.kind.value, str(e), traceback.format_exc())
            return f"API error: {e}"
