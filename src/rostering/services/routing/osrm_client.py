"""HTTP client for interacting with OSRM services."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings

# OSRM table endpoint has URL length limits; routes here are vehicle sized so one request is enough.
DEFAULT_MAX_COORDINATES_PER_REQUEST = 100

logger = logging.getLogger(__name__)


class OSRMClient:
    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_coordinates_per_request: int = DEFAULT_MAX_COORDINATES_PER_REQUEST,
    ) -> None:
        self.base_url = base_url or settings.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.profile = profile or settings.osrm_profile
        self.timeout = timeout if timeout is not None else settings.osrm_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.osrm_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.osrm_backoff_seconds
        self.max_coordinates_per_request = max_coordinates_per_request

    def _get_client(self) -> httpx.Client:
        # One client per call; the optimizer calls this from worker threads.
        return httpx.Client(timeout=httpx.Timeout(self.timeout, connect=10.0))

    def table(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Return the OSRM duration (seconds) and distance (meters) matrices.

        Args:
            coordinates: Sequence of (lat, lon) tuples

        Returns:
            Dictionary with ``durations`` and ``distances`` square matrices
        """
        if len(coordinates) < 1:
            raise ValueError("At least one coordinate is required for OSRM table.")
        if len(coordinates) > self.max_coordinates_per_request:
            raise ValueError(
                f"OSRM table request too large ({len(coordinates)} coordinates, "
                f"limit {self.max_coordinates_per_request})."
            )

        coordinate_str = ";".join(f"{lon},{lat}" for lat, lon in coordinates)
        params = {"annotations": "duration,distance"}
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code", "Ok") != "Ok":
                        raise ValueError(f"OSRM table request failed: {data.get('message', 'unknown error')}")
                    if "durations" not in data or "distances" not in data:
                        raise ValueError("OSRM response missing durations/distances.")
                    return data
                except httpx.HTTPStatusError:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM request timed out after {self.max_retries} attempts: {exc}")
                        raise
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.ConnectError, httpx.NetworkError, OSError) as exc:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ConnectionError(
                            f"Failed to connect to OSRM service at {self.base_url}: {exc}"
                        ) from exc
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {exc}")
                    time.sleep(wait_time)
        finally:
            client.close()


def check_health(base_url: str | None = None) -> bool:
    """Check OSRM service health by making a minimal table request."""
    base = base_url or settings.osrm_base_url
    if not base:
        return False
    try:
        test_coords = "13.388860,52.517037;13.385983,52.496891"
        url = f"{base}/table/v1/{settings.osrm_profile}/{test_coords}"
        response = httpx.get(url, params={"annotations": "duration"}, timeout=5.0)
        response.raise_for_status()
        data = response.json()
        return "durations" in data and isinstance(data.get("durations"), list)
    except (httpx.HTTPError, ValueError):
        return False
