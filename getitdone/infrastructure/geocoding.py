"""Google Maps Geocoding API client (forward and reverse lookups)."""

from __future__ import annotations

from typing import Any

from getitdone.config import Settings, settings as default_settings
from getitdone.domain.errors import NotFound, TransportFailure

from .transports import request_with_retry


def _component(components: list[dict[str, Any]], kind: str) -> str:
    for comp in components:
        if kind in comp.get("types", []):
            return comp.get("long_name", "")
    return ""


class GoogleGeocoder:
    def __init__(self, config: Settings = default_settings):
        self.config = config

    async def _lookup(self, params: dict[str, str]) -> dict[str, Any]:
        if not self.config.google_maps_api_key:
            raise TransportFailure("Google Maps API key not configured", retryable=False)
        response = await request_with_retry(
            "GET",
            f"{self.config.google_maps_base_url}/geocode/json",
            params={**params, "key": self.config.google_maps_api_key},
        )
        payload = response.json()
        status = payload.get("status")
        if status == "ZERO_RESULTS":
            raise NotFound("No matching address found")
        if status != "OK" or not payload.get("results"):
            raise TransportFailure(
                f"Geocoding failed: {status}",
                retryable=status in ("OVER_QUERY_LIMIT", "UNKNOWN_ERROR"),
            )
        return payload["results"][0]

    async def reverse(self, lng: float, lat: float) -> dict[str, Any]:
        """Coordinates -> address parts, in the errand location document shape."""
        result = await self._lookup({"latlng": f"{lat},{lng}"})
        components = result.get("address_components", [])
        return {
            "address": result.get("formatted_address", ""),
            "street": _component(components, "route"),
            "city": _component(components, "locality")
            or _component(components, "administrative_area_level_2"),
            "state": _component(components, "administrative_area_level_1"),
            "country": _component(components, "country"),
            "coordinates": [lng, lat],
        }

    async def forward(self, address: str) -> dict[str, Any]:
        """Free-form address -> coordinates."""
        result = await self._lookup({"address": address})
        location = result["geometry"]["location"]
        return {
            "formattedAddress": result.get("formatted_address", ""),
            "coordinates": [location["lng"], location["lat"]],
        }
