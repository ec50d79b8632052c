"""
Line normalization and amount extraction.
Cleans delimited transaction lines for display and recomputes a
best-effort total used to cross-check the service summary.
"""
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional

from core.logger import setup_logger

logger = setup_logger(__name__)

# Delimiters used by the supported transaction files
DELIMITER_PATTERN = re.compile(r"[|^,]")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Only numbers with a decimal point count as amounts
AMOUNT_PATTERN = re.compile(r"\b\d+\.\d{1,4}\b", re.ASCII)

AMOUNT_UPPER_BOUND = Decimal("1000000")
CENTS = Decimal("0.01")


def round_amount(value: Decimal) -> Decimal:
    """Round to two decimal places, half away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def clean_line(line: Optional[str]) -> str:
    """
    Strip delimiters from a raw line.
    
    Replaces every |, ^ and , with a space, collapses whitespace runs
    and trims the result.
    
    Args:
        line: Raw line content (may be None)
    
    Returns:
        Cleaned line, empty string for empty input
    """
    if not line:
        return ""
    
    cleaned = DELIMITER_PATTERN.sub(" ", str(line))
    cleaned = WHITESPACE_PATTERN.sub(" ", cleaned)
    return cleaned.strip()


def extract_amounts(line: Optional[str]) -> List[Decimal]:
    """
    Extract monetary amounts from a line.
    
    Values that are not positive or are at least 1,000,000 are noise
    and are dropped silently.
    
    Args:
        line: Raw line content
    
    Returns:
        Amounts rounded to two decimal places, in order of appearance
    """
    if not line:
        return []
    
    amounts = []
    for match in AMOUNT_PATTERN.findall(str(line)):
        try:
            value = Decimal(match)
        except InvalidOperation:
            logger.debug(f"Skipping unparsable amount: '{match}'")
            continue
        
        if value.is_nan() or value <= 0 or value >= AMOUNT_UPPER_BOUND:
            continue
        
        amounts.append(round_amount(value))
    
    return amounts


def aggregate_amounts(lines: Optional[Iterable[str]]) -> Decimal:
    """
    Sum the amounts found on every line.
    
    This is a client-side cross-check only; the service summary stays
    authoritative.
    
    Args:
        lines: Raw lines
    
    Returns:
        Total rounded to two decimal places
    """
    if not lines:
        return round_amount(Decimal("0"))
    
    total = Decimal("0")
    for line in lines:
        for amount in extract_amounts(line):
            total += amount
    
    return round_amount(total)


def format_amount(value) -> str:
    """
    Format an amount for display, e.g. ₱1,234.50.
    
    Args:
        value: Amount (Decimal, float, int or None)
    
    Returns:
        Peso-prefixed amount with thousands separators and two decimals
    """
    try:
        amount = Decimal(str(value)) if value is not None else Decimal("0")
    except InvalidOperation:
        amount = Decimal("0")
    if not amount.is_finite():
        amount = Decimal("0")
    return f"₱{round_amount(amount):,.2f}"
