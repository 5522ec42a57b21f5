# src/lkrates/domain/validation.py
"""
Rate Validation - Domain Sanity Bounds for USD/LKR

The bounds below describe what a plausible USD/LKR quote looked like when the
system was designed. They are tunable constants, not laws of nature; if the
rupee moves outside them every source will start failing validation at once.

Files that USE this module:
- lkrates.domain.models (ExchangeRateSample.create computes is_valid)
- lkrates.adapters.extractors.base (extractors reject implausible samples)
- lkrates.application.retry (re-checks every returned sample)

Files that this module USES:
- lkrates.domain.errors (ValidationError)
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, List, Optional, Union

from lkrates.domain.errors import ValidationError

if TYPE_CHECKING:
    from lkrates.domain.models import ExchangeRateSample

MIN_RATE = Decimal("100")
MAX_RATE = Decimal("500")
MIN_SPREAD = Decimal("0.1")
MAX_SPREAD = Decimal("20")

Number = Union[Decimal, float, int, str]


def to_decimal(value: Optional[Number]) -> Optional[Decimal]:
    """
    Convert a number-like value to Decimal.

    Floats go through str() so 295.55 stays 295.55 instead of its binary expansion.
    Returns None for None, booleans and anything that does not parse as a finite number.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        dec = value
    else:
        try:
            dec = Decimal(str(value).replace(",", "").strip())
        except (InvalidOperation, ValueError):
            return None
    if not dec.is_finite():
        return None
    return dec


def validate_rate(value: Optional[Number]) -> bool:
    """
    Check that a single rate is inside the plausible USD/LKR range.

    Args:
        value: Rate to check

    Returns:
        True if MIN_RATE <= value <= MAX_RATE, False otherwise (including None/NaN)
    """
    dec = to_decimal(value)
    if dec is None:
        return False
    return MIN_RATE <= dec <= MAX_RATE


def validate_spread(buying_rate: Optional[Number], selling_rate: Optional[Number]) -> bool:
    """
    Check the distance between buying and selling rates.

    Args:
        buying_rate: Buying rate (may be None)
        selling_rate: Selling rate (may be None)

    Returns:
        True if either rate is absent, otherwise MIN_SPREAD <= |sell - buy| <= MAX_SPREAD
    """
    buy = to_decimal(buying_rate)
    sell = to_decimal(selling_rate)
    if buy is None or sell is None:
        return True
    spread = abs(sell - buy)
    return MIN_SPREAD <= spread <= MAX_SPREAD


def sample_problems(
    buying_rate: Optional[Number] = None,
    selling_rate: Optional[Number] = None,
    telegraphic_buying_rate: Optional[Number] = None,
    indicative_rate: Optional[Number] = None,
) -> List[str]:
    """
    List every rule a set of rates breaks.

    Returns:
        Human-readable problems; an empty list means the rates are valid
    """
    named = {
        "buying": buying_rate,
        "selling": selling_rate,
        "telegraphic_buying": telegraphic_buying_rate,
        "indicative": indicative_rate,
    }
    populated = {name: value for name, value in named.items() if value is not None}
    if not populated:
        return ["no rate fields populated"]

    problems = [
        f"{name} rate {value} outside [{MIN_RATE}, {MAX_RATE}]"
        for name, value in populated.items()
        if not validate_rate(value)
    ]
    if not validate_spread(buying_rate, selling_rate):
        problems.append(f"spread between buying={buying_rate} and selling={selling_rate} outside [{MIN_SPREAD}, {MAX_SPREAD}]")
    return problems


def validate_sample(sample: "ExchangeRateSample") -> None:
    """
    Re-run the domain rules against a built sample.

    Raises:
        ValidationError: If any rule fails or the sample is flagged invalid
    """
    problems = sample_problems(
        sample.buying_rate,
        sample.selling_rate,
        sample.telegraphic_buying_rate,
        sample.indicative_rate,
    )
    if not problems and not sample.is_valid:
        problems = ["sample flagged invalid"]
    if problems:
        raise ValidationError(
            f"Invalid rates from {sample.source_id}: {'; '.join(problems)}",
            source_id=sample.source_id,
        )
