"""
Code Decoder
============

Advisory guess of manufacturer, category, model year and price from a
validated identification code.

decode() is pure and deterministic for a given clock: it does no I/O and
never raises. An unrecognized code yields the Unknown/Other/default-price
guess. The result is a DecodedVehicle, kept separate from the persisted
record schema so the operator can edit the guess before commit.

Usage:
    from vin_scan.decoding import decode_code

    vehicle = decode_code("5YJ3E1EA8PF123456")
    print(vehicle.manufacturer, vehicle.category.value, vehicle.price_estimate)
"""

import logging
import re
from dataclasses import asdict, dataclass, replace
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


class VehicleCategory(str, Enum):
    EV = "EV"
    REV = "REV"
    ICEV = "ICEV"
    OTHER = "Other"


UNKNOWN_MANUFACTURER = "Unknown"

# Ordered: first row whose prefix starts the WMI wins
MANUFACTURER_PREFIXES: Tuple[Tuple[str, str, VehicleCategory], ...] = (
    ("JN", "Nissan", VehicleCategory.EV),
    ("LFV", "BMW", VehicleCategory.EV),
    ("WBA", "BMW", VehicleCategory.EV),
    ("WBY", "BMW", VehicleCategory.EV),
    ("5YJ", "Tesla", VehicleCategory.EV),
    ("7SA", "Tesla", VehicleCategory.EV),
    ("LGX", "Voyah", VehicleCategory.EV),
    ("L6T", "BYD", VehicleCategory.EV),
    ("LFP", "Mercedes-Benz", VehicleCategory.EV),
    ("WDD", "Mercedes-Benz", VehicleCategory.EV),
    ("1G1", "Chevrolet", VehicleCategory.EV),
    ("KN", "Hyundai", VehicleCategory.EV),
    ("ZAM", "Lamborghini", VehicleCategory.ICEV),
    ("ZFF", "Ferrari", VehicleCategory.ICEV),
    ("WP0", "Porsche", VehicleCategory.EV),
    ("VF3", "Peugeot", VehicleCategory.EV),
)

# Position 10 year codes: letters cycle 2010-2030, digits 2000-2009
YEAR_CODES: Dict[str, int] = {
    **{letter: 2010 + i for i, letter in enumerate("ABCDEFGHJKLMNPRSTVWXY")},
    **{str(digit): 2000 + digit for digit in range(10)},
}

# Position 1: region of manufacture
COUNTRY_CODES: Dict[str, str] = {
    "1": "United States",
    "2": "Canada",
    "3": "Mexico",
    "J": "Japan",
    "K": "Korea",
    "L": "China",
    "S": "United Kingdom",
    "V": "France",
    "W": "Germany",
    "Z": "Italy",
}

# Model names printed on the plate, by manufacturer. Checked in order, so the
# more specific pattern comes first.
MODEL_PATTERNS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "Voyah": (
        (r"free\s*318", "Voyah Free 318"),
        (r"dream", "Voyah Dream"),
        (r"free", "Voyah Free"),
        (r"passion", "Voyah Passion"),
    ),
}

BASE_PRICES: Dict[str, int] = {
    "Tesla": 85000,
    "BMW": 75000,
    "Mercedes-Benz": 80000,
    "Voyah": 65000,
    "Porsche": 120000,
}
EV_BASE_PRICE = 60000
DEFAULT_BASE_PRICE = 50000


@dataclass(frozen=True)
class DecodedVehicle:
    """
    Non-authoritative decode of one code.

    Attributes:
        code: The code that was decoded
        wmi: World Manufacturer Identifier (first three characters)
        manufacturer: Guessed manufacturer, "Unknown" on a table miss
        category: Guessed powertrain category
        model_year: Guessed model year
        year_code: The 10th character
        year_inferred: True if year_code was unmapped and the current year was used
        price_estimate: Base price guess
        country: Region of manufacture from the first character, if known
        model_guess: Model name read from the plate text, if any
    """
    code: str
    wmi: str
    manufacturer: str
    category: VehicleCategory
    model_year: int
    year_code: str
    year_inferred: bool
    price_estimate: int
    country: Optional[str] = None
    model_guess: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.manufacturer != UNKNOWN_MANUFACTURER

    def with_overrides(self, **changes: Any) -> "DecodedVehicle":
        """Copy with operator edits applied (code is not editable)."""
        if "code" in changes and changes["code"] != self.code:
            raise ValueError("code cannot be changed on a decoded vehicle")
        if "category" in changes:
            changes["category"] = VehicleCategory(changes["category"])
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data


class CodeDecoder:
    """
    Table-driven decoder.

    The tables and the clock are injectable so that dealers can extend the
    prefix list and tests can pin the "current year".
    """

    def __init__(
        self,
        prefixes: Sequence[Tuple[str, str, VehicleCategory]] = MANUFACTURER_PREFIXES,
        year_codes: Optional[Dict[str, int]] = None,
        base_prices: Optional[Dict[str, int]] = None,
        ev_base_price: int = EV_BASE_PRICE,
        default_base_price: int = DEFAULT_BASE_PRICE,
        clock: Callable[[], date] = date.today,
        country_codes: Optional[Dict[str, str]] = None,
        model_patterns: Optional[Dict[str, Sequence[Tuple[str, str]]]] = None,
    ):
        self.prefixes = tuple(prefixes)
        self.year_codes = dict(YEAR_CODES if year_codes is None else year_codes)
        self.base_prices = dict(BASE_PRICES if base_prices is None else base_prices)
        self.ev_base_price = ev_base_price
        self.default_base_price = default_base_price
        self.clock = clock
        self.country_codes = dict(COUNTRY_CODES if country_codes is None else country_codes)
        self.model_patterns = dict(MODEL_PATTERNS if model_patterns is None else model_patterns)

    def decode(self, code: str, context_text: Optional[str] = None) -> DecodedVehicle:
        """
        Decode a code.

        Args:
            code: Validated 17-character code
            context_text: Full recognized text of the plate, used to spot a
                model name next to the code (camera scans only)
        """
        code = code.strip().upper()
        manufacturer, category = self.lookup_manufacturer(code)
        model_guess = self.lookup_model(manufacturer, context_text)
        model_year, year_code, inferred = self.lookup_model_year(code)
        price = self.estimate_price(manufacturer, category)

        logger.debug(
            f"Decoded {code}: {manufacturer}/{category.value}/{model_year}"
            f"{' (inferred)' if inferred else ''}, {price}"
        )
        return DecodedVehicle(
            code=code,
            wmi=code[:3],
            manufacturer=manufacturer,
            category=category,
            model_year=model_year,
            year_code=year_code,
            year_inferred=inferred,
            price_estimate=price,
            country=self.lookup_country(code),
            model_guess=model_guess,
        )

    def lookup_manufacturer(self, code: str) -> Tuple[str, VehicleCategory]:
        wmi = code[:3]
        for prefix, manufacturer, category in self.prefixes:
            if wmi.startswith(prefix):
                return manufacturer, category
        return UNKNOWN_MANUFACTURER, VehicleCategory.OTHER

    def lookup_country(self, code: str) -> Optional[str]:
        return self.country_codes.get(code[:1])

    def lookup_model(self, manufacturer: str, context_text: Optional[str]) -> Optional[str]:
        if not context_text:
            return None
        for pattern, model in self.model_patterns.get(manufacturer, ()):
            if re.search(pattern, context_text, re.IGNORECASE):
                return model
        return None

    def lookup_model_year(self, code: str) -> Tuple[int, str, bool]:
        """Return (year, year code, inferred)."""
        year_code = code[9] if len(code) > 9 else ""
        year = self.year_codes.get(year_code)
        if year is None:
            return self.clock().year, year_code, True
        return year, year_code, False

    def estimate_price(self, manufacturer: str, category: VehicleCategory) -> int:
        if manufacturer in self.base_prices:
            return self.base_prices[manufacturer]
        if category is VehicleCategory.EV:
            return self.ev_base_price
        return self.default_base_price


_default_decoder = CodeDecoder()


def decode_code(
    code: str,
    clock: Optional[Callable[[], date]] = None,
    context_text: Optional[str] = None,
) -> DecodedVehicle:
    """Decode with the default tables."""
    decoder = _default_decoder if clock is None else CodeDecoder(clock=clock)
    return decoder.decode(code, context_text)
