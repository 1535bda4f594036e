# backend/saferoute/services/regions.py
from __future__ import annotations

from typing import List

ALL_BARANGAYS = "All Barangays"

# Known barangays, matched by case-insensitive prefix so "carig sur (poblacion)" still lands.
KNOWN_BARANGAYS: tuple[str, ...] = (
    "Carig Sur",
    "Carig Norte",
    "Linao East",
    "Linao West",
    "Linao Norte",
)


def canonicalize_region(name: str | None) -> str:
    """
    Map a free-form barangay name to its display form.
    Unknown names pass through trimmed; the set is open, not an enum.
    """
    raw = (name or "").strip()
    s = raw.lower()
    for known in KNOWN_BARANGAYS:
        if s.startswith(known.lower()):
            return known
    if s in ("all", "all barangays"):
        return ALL_BARANGAYS
    return raw


def region_options() -> List[str]:
    return [ALL_BARANGAYS, *KNOWN_BARANGAYS]
