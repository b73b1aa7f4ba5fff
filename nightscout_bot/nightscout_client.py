"""
Nightscout REST client.

Implements the three fetches of a lookup on top of ``requests``. Failures
are raised as ``RemoteFetchError`` subclasses; transport errors from
``requests`` (timeouts, DNS and connection failures) propagate unchanged
and are classified by the caller.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError

from .config import Settings
from .constants import ENTRIES_PATH, PEBBLE_PATH, STATUS_PATH, TREND_ARROWS, TREND_DIRECTIONS
from .exceptions import MalformedRemoteDataError, NoRemoteDataError, RemoteStatusError
from .models import DeviceStatus, EndpointDescriptor, Entry, EntrySeries, SiteSettings, Thresholds

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Nightscout"


class NightscoutClient:
    """``RemoteGlucoseService`` backed by the Nightscout v1 API."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self._http = session or requests

    def _get_json(
        self,
        endpoint: EndpointDescriptor,
        path: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        GET a JSON document from a Nightscout site.

        Raises:
            RemoteStatusError: On a 4xx/5xx response
            NoRemoteDataError: On an empty body
            MalformedRemoteDataError: If the body is not JSON
        """
        url = f"{endpoint.base_url}{path}"
        query = dict(params or {})
        if endpoint.auth_token:
            query["token"] = endpoint.auth_token

        logger.debug("Fetching from Nightscout", extra={"url": url})

        response = self._http.get(
            url,
            params=query,
            headers={"Accept": "application/json"},
            timeout=self.settings.http_timeout_seconds,
        )
        if response.status_code >= 400:
            raise RemoteStatusError(response.status_code, url=url)

        if not response.content or not response.content.strip():
            raise NoRemoteDataError(url=url)

        try:
            return response.json()
        except ValueError as e:
            raise MalformedRemoteDataError(
                message="Nightscout returned invalid JSON",
                url=url,
                original_error=e,
            )

    def fetch_settings(self, endpoint: EndpointDescriptor) -> SiteSettings:
        """Fetch the site title and alarm thresholds from ``status.json``."""
        data = self._get_json(endpoint, STATUS_PATH)

        settings = data.get("settings") if isinstance(data, dict) else None
        if not isinstance(settings, dict):
            raise MalformedRemoteDataError(
                message="status.json has no settings object",
                url=endpoint.base_url,
            )

        raw = settings.get("thresholds") or {}
        try:
            thresholds = Thresholds(
                low=raw["bgLow"],
                bottom=raw["bgTargetBottom"],
                top=raw["bgTargetTop"],
                high=raw["bgHigh"],
            )
        except (KeyError, TypeError, ValidationError) as e:
            raise MalformedRemoteDataError(
                message="status.json has missing or invalid thresholds",
                url=endpoint.base_url,
                original_error=e,
            )

        return SiteSettings(
            title=settings.get("customTitle") or DEFAULT_TITLE,
            thresholds=thresholds,
        )

    def fetch_entries(self, endpoint: EndpointDescriptor) -> EntrySeries:
        """Fetch the most recent sensor glucose entries, newest first."""
        data = self._get_json(endpoint, ENTRIES_PATH, {"count": self.settings.entries_count})

        if not isinstance(data, list):
            raise MalformedRemoteDataError(message="entries payload is not a list", url=endpoint.base_url)
        if not data:
            raise NoRemoteDataError(message="Nightscout has no glucose entries", url=endpoint.base_url)

        try:
            entries = [_parse_entry(raw) for raw in data]
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
            raise MalformedRemoteDataError(
                message="entries payload could not be parsed",
                url=endpoint.base_url,
                original_error=e,
            )

        entries.sort(key=lambda entry: entry.captured_at, reverse=True)
        return EntrySeries(entries=entries)

    def fetch_device_status(self, endpoint: EndpointDescriptor) -> DeviceStatus:
        """Fetch insulin and carbs on board from the pebble endpoint."""
        data = self._get_json(endpoint, PEBBLE_PATH, {"count": 1})

        bgs = data.get("bgs") if isinstance(data, dict) else None
        if not isinstance(bgs, list):
            raise MalformedRemoteDataError(message="pebble payload has no bgs list", url=endpoint.base_url)
        if not bgs:
            raise NoRemoteDataError(message="pebble payload has no readings", url=endpoint.base_url)

        try:
            latest = bgs[0]
            return DeviceStatus(
                insulin_on_board=float(latest.get("iob") or 0),
                carbs_on_board=int(round(float(latest.get("cob") or 0))),
            )
        except (AttributeError, TypeError, ValueError, OverflowError) as e:
            raise MalformedRemoteDataError(
                message="pebble payload could not be parsed",
                url=endpoint.base_url,
                original_error=e,
            )


def _parse_entry(raw: Dict[str, Any]) -> Entry:
    """
    Parse one ``entries/sgv.json`` record.

    Raises:
        KeyError, TypeError, ValueError: If required fields are missing or invalid
        OverflowError, OSError: If the value or the date is out of range
    """
    mgdl = int(round(float(raw["sgv"])))

    if raw.get("date") is not None:
        captured_at = datetime.fromtimestamp(float(raw["date"]) / 1000, tz=timezone.utc)
    else:
        captured_at = datetime.fromisoformat(str(raw["dateString"]).replace("Z", "+00:00"))
    if captured_at.tzinfo is None:
        captured_at = captured_at.replace(tzinfo=timezone.utc)

    return Entry(mgdl=mgdl, captured_at=captured_at, trend_code=_trend_code(raw))


def _trend_code(raw: Dict[str, Any]) -> int:
    """Map a numeric trend or a direction name onto the arrow table."""
    trend = raw.get("trend")
    if isinstance(trend, int) and 0 <= trend < len(TREND_ARROWS):
        return trend
    return TREND_DIRECTIONS.get(raw.get("direction") or "NONE", 0)
