"""
Code Extractor
==============

Finds one 17-character identification code in free-form recognized text.

Two passes, in order:

1. bare: a word-bounded run of exactly 17 grammar characters
2. labeled: a marker keyword (VIN, CHASSIS, S/N, ...) followed by 17
   grammar characters, which may be split by one space, dot or dash at
   the WMI/VDS/VIS boundaries only ("VIN: 5YJ-3E1EA8-PF123456")

Every match is uppercased and stripped of non-grammar characters; the
first one that is then exactly 17 characters long wins. Candidates are
never scored against each other.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from ..core.exceptions import ExtractionError, ExtractionErrorKind
from ..core.vin_utils import VIN_CHAR_CLASS, VIN_LENGTH, VIN_SECTIONS, clean_code, is_valid_code

logger = logging.getLogger(__name__)


MIN_TEXT_LENGTH = 10

LABEL_MARKERS: Tuple[str, ...] = (
    "VIN", "V.I.N", "VEHICLE ID", "CHASSIS", "FRAME", "SERIAL", "S/N", "IDENT",
)

BARE_PATTERN = re.compile(rf"\b{VIN_CHAR_CLASS}{{{VIN_LENGTH}}}\b", re.IGNORECASE)

_marker_alternation = "|".join(
    re.escape(marker).replace(r"\ ", r"\s+") for marker in LABEL_MARKERS
)
_sectioned_code = r"[\s.\-]?".join(f"{VIN_CHAR_CLASS}{{{size}}}" for size in VIN_SECTIONS)
# The trailing boundary keeps a short read from borrowing letters of the next word
LABELED_PATTERN = re.compile(
    rf"(?:{_marker_alternation})\.?[:#\s]*({_sectioned_code})\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ExtractionResult:
    """An accepted code and where it came from."""
    code: str
    source_pass: str
    matched_text: str


class CodeExtractor:
    """
    Extracts an identification code from recognized text.

    Example:
        extractor = CodeExtractor()
        result = extractor.extract("VEHICLE ID: LGX1234567890ABCD extra noise")
        print(result.code)  # LGX1234567890ABCD
    """

    def __init__(self, min_text_length: int = MIN_TEXT_LENGTH):
        self.min_text_length = min_text_length

    def extract(self, text: Optional[str]) -> ExtractionResult:
        """
        Run both passes and return the first valid candidate.

        Raises:
            ExtractionError: TEXT_TOO_SHORT if the text is below the minimum
                useful length, NOT_FOUND if no candidate is valid
        """
        stripped = (text or "").strip()
        if len(stripped) < self.min_text_length:
            logger.debug(f"Recognized text too short ({len(stripped)} chars)")
            raise ExtractionError(ExtractionErrorKind.TEXT_TOO_SHORT, text_length=len(stripped))

        for source_pass, matched in self.candidates(stripped):
            code = clean_code(matched)
            if len(code) == VIN_LENGTH and is_valid_code(code):
                logger.debug(f"Extracted {code} via {source_pass} match '{matched}'")
                return ExtractionResult(code=code, source_pass=source_pass, matched_text=matched)
            logger.debug(f"Rejected {source_pass} candidate '{matched}' (cleaned to {len(code)} chars)")

        raise ExtractionError(ExtractionErrorKind.NOT_FOUND, text_length=len(stripped))

    def find_code(self, text: Optional[str]) -> Optional[str]:
        """Like extract() but returns None instead of raising."""
        try:
            return self.extract(text).code
        except ExtractionError:
            return None

    @staticmethod
    def candidates(text: str) -> Iterator[Tuple[str, str]]:
        """Yield (pass name, matched substring) in pass order."""
        for match in BARE_PATTERN.finditer(text):
            yield "bare", match.group(0)
        for match in LABELED_PATTERN.finditer(text):
            yield "labeled", match.group(1)
