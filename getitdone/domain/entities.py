"""
Domain value objects.

- ``Location``: a validated ``[longitude, latitude]`` pair.
- ``Address``: the location document stored for pickups and drop-offs.
- ``Actor``: who is performing an operation (id + role), consumed by the
  permission policy and the errand service.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from .enums import UserRole
from .errors import ValidationError

ADDRESS_FIELDS = ("address", "city", "state", "country")


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    longitude: float
    latitude: float

    @classmethod
    def from_pair(cls, pair: Any, label: str = "coordinates") -> "Location":
        """Validate a ``[lng, lat]`` pair coming from a request or a document."""
        if not isinstance(pair, (list, tuple)) or len(pair) != 2:
            raise ValidationError(f"{label} must be a [longitude, latitude] pair")
        lng, lat = pair
        for value in (lng, lat):
            if (
                isinstance(value, bool)
                or not isinstance(value, (int, float))
                or not math.isfinite(value)
            ):
                raise ValidationError(f"{label} must be numeric")
        if not -180 <= lng <= 180 or not -90 <= lat <= 90:
            raise ValidationError(f"{label} are out of range")
        return cls(float(lng), float(lat))

    def as_pair(self) -> list[float]:
        return [self.longitude, self.latitude]


@dataclass(frozen=True)
class Address:
    address: str
    city: str
    state: str
    country: str
    location: Location

    @classmethod
    def from_document(cls, doc: Mapping[str, Any] | None, label: str) -> "Address":
        if not doc:
            raise ValidationError(f"{label} is required")
        missing = [f for f in ADDRESS_FIELDS if not str(doc.get(f) or "").strip()]
        if missing:
            raise ValidationError(f"{label} is missing: {', '.join(missing)}")
        return cls(
            address=str(doc["address"]).strip(),
            city=str(doc["city"]).strip(),
            state=str(doc["state"]).strip(),
            country=str(doc["country"]).strip(),
            location=Location.from_pair(doc.get("coordinates"), f"{label} coordinates"),
        )

    def to_document(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "coordinates": self.location.as_pair(),
        }


@dataclass(frozen=True)
class Actor:
    id: int
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
