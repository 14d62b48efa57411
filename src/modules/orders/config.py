"""Marketplace economics, resolved once and injected into ``OrderService``."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class MarketplaceConfig:
    """Deployment-level constants for order pricing and rider eligibility.

    ``commission_rate`` is the platform's share of the product price,
    deducted from the seller's payout.  ``default_delivery_fee`` applies
    when the buyer does not choose one and is paid through to the rider.
    """

    commission_rate: Decimal = Decimal("0.10")
    default_delivery_fee: Decimal = Decimal("1500.00")
    require_verified_riders: bool = False

    def __post_init__(self) -> None:
        if not Decimal("0") <= self.commission_rate < Decimal("1"):
            raise ValueError("commission_rate must be in [0, 1).")
        if self.default_delivery_fee < 0:
            raise ValueError("default_delivery_fee cannot be negative.")

    @classmethod
    def from_settings(cls) -> MarketplaceConfig:
        from django.conf import settings

        return cls(
            commission_rate=Decimal(str(settings.MARKETPLACE_COMMISSION_RATE)),
            default_delivery_fee=Decimal(str(settings.MARKETPLACE_DEFAULT_DELIVERY_FEE)),
            require_verified_riders=settings.MARKETPLACE_REQUIRE_VERIFIED_RIDERS,
        )
