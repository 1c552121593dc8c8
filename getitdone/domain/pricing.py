"""
Errand Pricing Engine  (Strategy Pattern)
=========================================

Formula
-------
Base_Price   = Distance x Rate_Per_KM x Type_Multiplier
Priority_Fee = Base_Price x Priority_Rate     (priority errands only)
Service_Fee  = Base_Price x Service_Rate
Total_Price  = Base_Price + Priority_Fee + Service_Fee

* **Type_Multiplier**: delivery 1.0, shopping 1.2, document 1.0, repair 1.5
* **Duration** = ceil(Distance / Average_Speed x 60) minutes

Prices are computed once, when the errand is created, and never
recomputed afterwards.

Complexity: O(1) per quote.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass

from .enums import ErrandType, Priority
from .errors import InvalidInput
from .geolocation import compute_eta

TYPE_MULTIPLIERS: dict[ErrandType, float] = {
    ErrandType.DELIVERY: 1.0,
    ErrandType.SHOPPING: 1.2,
    ErrandType.DOCUMENT: 1.0,
    ErrandType.REPAIR: 1.5,
}


@dataclass(frozen=True)
class PriceQuote:
    base_price: float
    priority_fee: float
    service_fee: float
    total_price: float
    estimated_duration: int


# ── Priority strategies ───────────────────────────────────────────────


class PriorityFeeStrategy(ABC):
    @abstractmethod
    def fee(self, base_price: float) -> float: ...


class NoPriorityFee(PriorityFeeStrategy):
    def fee(self, base_price: float) -> float:
        return 0.0


class FlatRatePriorityFee(PriorityFeeStrategy):
    def __init__(self, rate: float = 0.2):
        self.rate = rate

    def fee(self, base_price: float) -> float:
        return base_price * self.rate


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the errand service."""

    def __init__(
        self,
        rate_per_km: float = 500.0,
        priority_fee_rate: float = 0.2,
        service_fee_rate: float = 0.1,
        average_speed_kmh: float = 30.0,
    ):
        self.rate_per_km = rate_per_km
        self.priority_fee_rate = priority_fee_rate
        self.service_fee_rate = service_fee_rate
        self.average_speed_kmh = average_speed_kmh

    @staticmethod
    def _check_distance(distance_km: float) -> None:
        if (
            isinstance(distance_km, bool)
            or not isinstance(distance_km, (int, float))
            or not math.isfinite(distance_km)
            or distance_km < 0
        ):
            raise InvalidInput("Distance must be a non-negative number")

    def _strategy_for(self, priority: Priority | str) -> PriorityFeeStrategy:
        try:
            priority = Priority(priority)
        except ValueError:
            raise InvalidInput(f"Unknown priority: {priority!r}") from None
        if priority is Priority.PRIORITY:
            return FlatRatePriorityFee(self.priority_fee_rate)
        return NoPriorityFee()

    def base_price(self, distance_km: float, errand_type: ErrandType | str) -> float:
        self._check_distance(distance_km)
        try:
            multiplier = TYPE_MULTIPLIERS[ErrandType(errand_type)]
        except ValueError:
            raise InvalidInput(f"Unknown errand type: {errand_type!r}") from None
        return distance_km * self.rate_per_km * multiplier

    def estimate_duration(self, distance_km: float) -> int:
        """Minutes, rounded up."""
        self._check_distance(distance_km)
        return compute_eta(distance_km, self.average_speed_kmh)

    def quote(
        self,
        distance_km: float,
        errand_type: ErrandType | str,
        priority: Priority | str = Priority.NORMAL,
    ) -> PriceQuote:
        base = self.base_price(distance_km, errand_type)
        priority_fee = self._strategy_for(priority).fee(base)
        service_fee = base * self.service_fee_rate
        return PriceQuote(
            base_price=base,
            priority_fee=priority_fee,
            service_fee=service_fee,
            total_price=base + priority_fee + service_fee,
            estimated_duration=self.estimate_duration(distance_km),
        )
