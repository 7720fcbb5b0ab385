"""Online store lookup by address (Places text search).

Lookups are best effort: any failure is logged and reported as "no hint".
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

import httpx

from shelfscan.domain.receipt import GeocodeHint
from shelfscan.receipt.store_identifier import store_chain_from_place_name
from shelfscan.runtime.logging import get_logger
from shelfscan.runtime.settings import DEFAULT_PLACES_MIN_INTERVAL, DEFAULT_PLACES_TIMEOUT, PipelineSettings

logger = get_logger(__name__)

PLACES_TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"


class PlacesGeocoder:
    """Callable mapping a free-text address to a store chain guess.

    Calls made within `min_interval` seconds of the previous request are
    skipped rather than delayed.
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = DEFAULT_PLACES_TIMEOUT,
        min_interval: float = DEFAULT_PLACES_MIN_INTERVAL,
        url: str = PLACES_TEXT_SEARCH_URL,
        client: httpx.Client | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for online address lookup")
        self.api_key = api_key
        self.timeout = timeout
        self.min_interval = min_interval
        self.url = url
        self._client = client
        self._clock = clock
        self._lock = threading.Lock()
        self._last_request: float | None = None

    @classmethod
    def from_settings(cls, settings: PipelineSettings, client: httpx.Client | None = None) -> PlacesGeocoder:
        if not settings.places_api_key:
            raise ValueError("Online address lookup is not configured")
        return cls(
            settings.places_api_key,
            timeout=settings.places_timeout,
            min_interval=settings.places_min_interval,
            client=client,
        )

    def _acquire_slot(self) -> bool:
        with self._lock:
            now = self._clock()
            if self._last_request is not None and now - self._last_request < self.min_interval:
                return False
            self._last_request = now
            return True

    def _get(self, params: dict[str, str]) -> httpx.Response:
        if self._client is not None:
            return self._client.get(self.url, params=params, timeout=self.timeout)
        return httpx.get(self.url, params=params, timeout=self.timeout)

    def __call__(self, address: str) -> GeocodeHint | None:
        if not address.strip():
            return None
        if not self._acquire_slot():
            logger.debug("Skipping address lookup: rate limited")
            return None

        try:
            response = self._get({"query": address, "type": "store", "key": self.api_key})
        except httpx.HTTPError as e:
            logger.warning("Address lookup failed: %s", e)
            return None

        if response.status_code != 200:
            logger.warning("Address lookup error: %s", response.status_code)
            return None

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("Malformed address lookup response: %s", e)
            return None
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None

        place = results[0]
        chain = store_chain_from_place_name(str(place.get("name", "")))
        if chain is None:
            logger.debug("Place %r is not a known chain", place.get("name"))
            return None
        return GeocodeHint(store_name=chain, formatted_address=str(place.get("formatted_address", "")))
