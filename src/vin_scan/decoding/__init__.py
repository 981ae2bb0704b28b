"""
VIN Scan Decoding Module
========================

Prefix/year table lookups producing advisory vehicle guesses.
"""

from .decoder import (
    VehicleCategory,
    UNKNOWN_MANUFACTURER,
    MANUFACTURER_PREFIXES,
    YEAR_CODES,
    COUNTRY_CODES,
    MODEL_PATTERNS,
    BASE_PRICES,
    EV_BASE_PRICE,
    DEFAULT_BASE_PRICE,
    DecodedVehicle,
    CodeDecoder,
    decode_code,
)

__all__ = [
    "VehicleCategory",
    "UNKNOWN_MANUFACTURER",
    "MANUFACTURER_PREFIXES",
    "YEAR_CODES",
    "COUNTRY_CODES",
    "MODEL_PATTERNS",
    "BASE_PRICES",
    "EV_BASE_PRICE",
    "DEFAULT_BASE_PRICE",
    "DecodedVehicle",
    "CodeDecoder",
    "decode_code",
]
