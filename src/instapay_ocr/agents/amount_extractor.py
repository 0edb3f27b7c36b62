import math
import re
from typing import List, Optional, Protocol, Sequence

from instapay_ocr.logger import get_logger
from instapay_ocr.models import AmountCandidate

logger = get_logger(__name__)

# -----------------------------------------------------------
# Token patterns
# -----------------------------------------------------------
# 30,000 / 27,600 / 1,234,567.89 or 200 / 5000 / 200.50
AMOUNT_PATTERN = re.compile(
    r"\b(?:\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)\b",
    re.ASCII,
)
CURRENCY_PATTERN = re.compile(r"EGP", re.IGNORECASE)
TRANSFER_LABEL_PATTERN = re.compile(r"transfer\s*amount", re.IGNORECASE)

# Egyptian mobile numbers: 11 digits starting with 01
MOBILE_PREFIX = "01"
MOBILE_DIGITS = 11
# 9+ digits are account / reference numbers regardless of grouping
REFERENCE_MIN_DIGITS = 9
MAX_PLAUSIBLE_AMOUNT = 1_000_000_000


def iter_lines(text: Optional[str]) -> List[str]:
    """Trimmed, non-empty lines of the OCR text. Only "\n" breaks a line; a trailing "\r" is trimmed."""
    return [line.strip() for line in (text or "").split("\n") if line.strip()]


def count_digits(token: str) -> int:
    return sum(1 for ch in token if "0" <= ch <= "9")


def is_phone_like(token: str) -> bool:
    digits = re.sub(r"[^0-9]", "", token)
    if len(digits) == MOBILE_DIGITS and digits.startswith(MOBILE_PREFIX):
        return True
    return len(digits) >= REFERENCE_MIN_DIGITS


def to_number(token: str) -> Optional[float]:
    """Drops thousands separators; only finite values above zero count."""
    try:
        value = float(token.replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) and value > 0 else None


def format_amount(value: float) -> str:
    """1250.5 -> '1,250.5'; 30000.0 -> '30,000'. Inverse of to_number for two-decimal amounts."""
    text = f"{value:,.2f}"
    return text.rstrip("0").rstrip(".")


def _candidate(raw: str, line: str, line_index: int) -> AmountCandidate:
    return AmountCandidate(
        raw=raw,
        value=to_number(raw),
        digit_count=count_digits(raw),
        line=line,
        line_index=line_index,
    )


def find_candidates(text: Optional[str]) -> List[AmountCandidate]:
    """Every amount token in document order, phone-like ones included."""
    return [
        _candidate(match.group(0), line, index)
        for index, line in enumerate(iter_lines(text))
        for match in AMOUNT_PATTERN.finditer(line)
    ]


# -----------------------------------------------------------
# Tier 3 selection strategies
# -----------------------------------------------------------
class AmountSelectionStrategy(Protocol):
    def select(self, candidates: Sequence[AmountCandidate]) -> Optional[AmountCandidate]:
        ...


class LargestAmountStrategy:
    """
    The transfer amount is usually the largest plausible number on the screenshot,
    bigger than any fee. Known limitation: a balance-after figure can outrank it.
    """

    def select(self, candidates: Sequence[AmountCandidate]) -> Optional[AmountCandidate]:
        ranked = sorted(candidates, key=lambda c: c.value, reverse=True)
        return ranked[0] if ranked else None


class FirstAmountStrategy:
    """Topmost candidate wins."""

    def select(self, candidates: Sequence[AmountCandidate]) -> Optional[AmountCandidate]:
        return candidates[0] if candidates else None


DEFAULT_STRATEGY = LargestAmountStrategy()


# -----------------------------------------------------------
# Extractor
# -----------------------------------------------------------
def _scan_marked_lines(lines: List[str], marker: re.Pattern) -> Optional[float]:
    for index, line in enumerate(lines):
        if not marker.search(line):
            continue
        match = AMOUNT_PATTERN.search(line)
        if match and not is_phone_like(match.group(0)):
            value = to_number(match.group(0))
            if value is not None:
                logger.debug("Amount %s taken from line %d: %r", value, index, line)
                return value
    return None


def extract_best_amount(text: Optional[str], strategy: Optional[AmountSelectionStrategy] = None) -> Optional[float]:
    """
    Picks the transfer amount from raw OCR text. Tiers, first hit wins:
    1. First number on a line mentioning EGP
    2. First number on a "Transfer Amount" line
    3. Among all remaining plausible numbers, the strategy's pick (largest by default)

    Phone numbers and reference numbers are never returned. Returns None when
    nothing qualifies; the caller then asks the user to type the amount.
    """
    lines = iter_lines(text)
    if not lines:
        return None

    for tier, marker in ((1, CURRENCY_PATTERN), (2, TRANSFER_LABEL_PATTERN)):
        value = _scan_marked_lines(lines, marker)
        if value is not None:
            logger.info("Amount %s found by tier %d.", value, tier)
            return value

    candidates = [
        c for c in find_candidates(text)
        if not is_phone_like(c.raw) and c.is_valid and c.value < MAX_PLAUSIBLE_AMOUNT
    ]
    if not candidates:
        logger.info("No amount candidate in %d OCR lines.", len(lines))
        return None

    chosen = (strategy or DEFAULT_STRATEGY).select(candidates)
    if chosen is None:
        return None

    logger.info("Amount %s chosen from %d fallback candidates.", chosen.value, len(candidates))
    return chosen.value
