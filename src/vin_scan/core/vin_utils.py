"""
VIN Utilities - Single Source of Truth
======================================

Identification-code grammar shared by every entry point of the pipeline.

A code is accepted only when it is exactly 17 characters drawn from
A-Z and 0-9 without I, O and Q. Both the camera path and manual entry
go through validate_identification_code() before any decode step runs.
"""

import re
import logging
from typing import Dict, FrozenSet, List, Optional, Tuple
from dataclasses import dataclass

from .exceptions import CodeValidationError

logger = logging.getLogger(__name__)


# =============================================================================
# VIN CONSTANTS
# =============================================================================

class VINConstants:
    """Immutable VIN grammar constants per ISO 3779."""

    LENGTH: int = 17

    # I, O, Q excluded to avoid confusion with 1 and 0
    VALID_CHARS: FrozenSet[str] = frozenset("0123456789ABCDEFGHJKLMNPRSTUVWXYZ")
    INVALID_CHARS: FrozenSet[str] = frozenset("IOQ")

    # 1-based positions
    CHECK_DIGIT_POSITION: int = 9
    YEAR_POSITION: int = 10
    PLANT_POSITION: int = 11

    CHECKSUM_WEIGHTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)

    # Transliteration table for the check digit
    CHAR_VALUES: Dict[str, int] = {
        'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
        'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
        'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
        '0': 0, '1': 1, '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9
    }


VIN_LENGTH = VINConstants.LENGTH
VIN_VALID_CHARS = VINConstants.VALID_CHARS
VIN_INVALID_CHARS = VINConstants.INVALID_CHARS

# Character class used by every grammar regex in the package
VIN_CHAR_CLASS = "[A-HJ-NPR-Z0-9]"
VIN_PATTERN = re.compile(rf"^{VIN_CHAR_CLASS}{{{VIN_LENGTH}}}$")

# WMI, VDS and VIS lengths; the only places a printed code may be split
VIN_SECTIONS: Tuple[int, ...] = (3, 6, 8)
_NON_VIN_CHARS = re.compile(r"[^A-HJ-NPR-Z0-9]")


# =============================================================================
# NORMALIZATION
# =============================================================================

def normalize_code(raw: str) -> str:
    """Trim surrounding whitespace and uppercase."""
    return raw.strip().upper()


def clean_code(raw: str) -> str:
    """
    Uppercase and drop every character outside the VIN alphabet.

    Used on OCR matches, where separators and noise are expected.
    """
    return _NON_VIN_CHARS.sub("", raw.upper())


def sanitize_code_input(raw: str) -> str:
    """Clean typed input and cap it at 17 characters (for input masks)."""
    if not raw or not isinstance(raw, str):
        return ""
    return clean_code(raw)[:VIN_LENGTH]


def format_code_for_display(code: str) -> str:
    """
    Split a valid code into its WMI, VDS and VIS sections.

    Examples:
        >>> format_code_for_display("5YJ3E1EA8PF123456")
        '5YJ 3E1EA8 PF123456'
    """
    if not is_valid_code(code):
        return code
    code = normalize_code(code)
    parts = []
    start = 0
    for size in VIN_SECTIONS:
        parts.append(code[start:start + size])
        start += size
    return " ".join(parts)


# =============================================================================
# VALIDATION
# =============================================================================

def is_valid_code(code: str) -> bool:
    """Return True if the (trimmed, uppercased) code matches the grammar."""
    if not code or not isinstance(code, str):
        return False
    return VIN_PATTERN.match(normalize_code(code)) is not None


def validate_identification_code(raw: str) -> str:
    """
    Validate a code at a pipeline entry point.

    Args:
        raw: Code as typed by the operator or extracted from OCR text

    Returns:
        The normalized 17-character code

    Raises:
        CodeValidationError: If the code is not a string, has the wrong
            length, or contains characters outside the alphabet
    """
    if not isinstance(raw, str):
        raise CodeValidationError(repr(raw), f"expected string, got {type(raw).__name__}")

    code = normalize_code(raw)

    if not code:
        raise CodeValidationError(code, "no VIN entered")

    if len(code) != VIN_LENGTH:
        raise CodeValidationError(code, f"length {len(code)}, expected {VIN_LENGTH}")

    invalid = sorted({c for c in code if c not in VIN_VALID_CHARS})
    if invalid:
        raise CodeValidationError(code, f"invalid characters {''.join(invalid)}", invalid_chars=invalid)

    return code


@dataclass
class VINValidationResult:
    """Result of VIN validation."""
    vin: str
    is_valid_length: bool
    has_valid_chars: bool
    invalid_chars: List[str]
    checksum_valid: bool
    expected_check_digit: Optional[str]
    is_valid: bool

    def to_dict(self) -> Dict:
        return {
            'vin': self.vin,
            'is_valid_length': self.is_valid_length,
            'has_valid_chars': self.has_valid_chars,
            'invalid_chars': self.invalid_chars,
            'checksum_valid': self.checksum_valid,
            'expected_check_digit': self.expected_check_digit,
            'is_valid': self.is_valid,
        }


def validate_vin(vin: str) -> VINValidationResult:
    """
    Report every validation aspect of a code without raising.

    is_valid reflects the grammar only. The check digit is reported but
    not enforced: many non-North-American VINs carry no valid checksum.
    """
    vin = normalize_code(vin) if isinstance(vin, str) else ""

    is_valid_length = len(vin) == VIN_LENGTH
    invalid_chars = [c for c in vin if c not in VIN_VALID_CHARS]
    has_valid_chars = bool(vin) and not invalid_chars

    expected_check_digit = None
    checksum_valid = False
    if is_valid_length and has_valid_chars:
        expected_check_digit = calculate_check_digit(vin)
        checksum_valid = expected_check_digit is not None and vin[8] == expected_check_digit

    return VINValidationResult(
        vin=vin,
        is_valid_length=is_valid_length,
        has_valid_chars=has_valid_chars,
        invalid_chars=invalid_chars,
        checksum_valid=checksum_valid,
        expected_check_digit=expected_check_digit,
        is_valid=is_valid_length and has_valid_chars,
    )


def calculate_check_digit(vin: str) -> Optional[str]:
    """
    Calculate the expected check digit (position 9) for a 17-character code.

    Returns:
        '0'-'9' or 'X', or None if the code cannot be weighted
    """
    if len(vin) != VIN_LENGTH:
        return None

    total = 0
    for i, char in enumerate(vin.upper()):
        if i == VINConstants.CHECK_DIGIT_POSITION - 1:
            continue
        value = VINConstants.CHAR_VALUES.get(char)
        if value is None:
            return None
        total += value * VINConstants.CHECKSUM_WEIGHTS[i]

    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def validate_checksum(vin: str) -> bool:
    """Return True if position 9 holds the expected check digit."""
    expected = calculate_check_digit(vin)
    return expected is not None and vin[8].upper() == expected
