"""Delivery fee resolution by address keywords."""

from decimal import Decimal
from typing import Iterable

from .models import DeliveryZone


def _keywords(zone: DeliveryZone) -> list[str]:
    return [k.strip().lower() for k in zone.area_keywords if k and k.strip()]


def zone_matches(zone: DeliveryZone, address: str | None) -> bool:
    """True if any keyword of the zone appears in the address (case-insensitive).

    The active flag is not considered here; staff filters match inactive
    zones too.
    """
    text = (address or "").lower()
    if not text:
        return False
    return any(k in text for k in _keywords(zone))


def find_zone(address: str | None, zones: Iterable[DeliveryZone]) -> DeliveryZone | None:
    """First active zone matching the address, in configured order."""
    if not (address or "").strip():
        return None
    for zone in zones:
        if zone.is_active and zone_matches(zone, address):
            return zone
    return None


def resolve_fee(address: str | None, zones: Iterable[DeliveryZone]) -> Decimal | None:
    """
    Delivery fee for an address.

    Returns:
        The fee of the first matching active zone, or None when the address is
        outside every delivery zone.
    """
    zone = find_zone(address, zones)
    return zone.fee if zone is not None else None


def parse_keywords(text: str) -> list[str]:
    """Split a comma-separated keyword list, dropping blanks."""
    return [k.strip() for k in (text or "").split(",") if k.strip()]
