#!/usr/bin/env python3
"""
Price Statistics - pure helpers for market-rate benchmarks.

All money and percentage values are Decimals. Two-decimal and one-decimal
results round half to even; whole-number display values round half up.
"""

from decimal import Decimal, ROUND_HALF_EVEN, ROUND_HALF_UP
from typing import Sequence

from database.models import PriceRating
from core.utils import round_money, to_decimal

ONE_PLACE = Decimal("0.1")
WHOLE = Decimal("1")

# Rating thresholds in percent; the upper two are exclusive
PREMIUM_ABOVE = Decimal("20")
ABOVE_MARKET_ABOVE = Decimal("5")
# and the lower two inclusive
AT_MARKET_FROM = Decimal("-5")
BELOW_MARKET_FROM = Decimal("-20")

MARKET_BAND_PCT = Decimal("5")

POSITION_BELOW = "below"
POSITION_AT = "at"
POSITION_ABOVE = "above"


def calculate_median(sorted_values: Sequence[Decimal]) -> Decimal:
    """Median of an ascending sequence; the mean of the middle pair is rounded to 2 dp."""
    count = len(sorted_values)
    if count == 0:
        return Decimal("0")

    mid = count // 2
    if count % 2 == 0:
        return round_money((to_decimal(sorted_values[mid - 1]) + to_decimal(sorted_values[mid])) / 2)
    return to_decimal(sorted_values[mid])


def calculate_average(values: Sequence[Decimal]) -> Decimal:
    if not values:
        return Decimal("0")
    return round_money(sum(to_decimal(v) for v in values) / len(values))


def calculate_percentage_difference(your_price: Decimal, market_average: Decimal) -> Decimal:
    """Signed difference from the market average in percent, 1 dp. Zero when there is no average."""
    your_price = to_decimal(your_price)
    market_average = to_decimal(market_average)
    if market_average == 0:
        return Decimal("0")

    pct = (your_price - market_average) / market_average * 100
    return pct.quantize(ONE_PLACE, rounding=ROUND_HALF_EVEN)


def get_price_rating(percentage_difference: Decimal) -> PriceRating:
    pct = to_decimal(percentage_difference)
    if pct > PREMIUM_ABOVE:
        return PriceRating.PREMIUM
    if pct > ABOVE_MARKET_ABOVE:
        return PriceRating.ABOVE_MARKET
    if pct >= AT_MARKET_FROM:
        return PriceRating.AT_MARKET
    if pct >= BELOW_MARKET_FROM:
        return PriceRating.BELOW_MARKET
    return PriceRating.BUDGET


def format_whole(value: Decimal) -> str:
    """Whole number with thousands separators, e.g. Decimal('1234.5') -> '1,235'."""
    return f"{int(to_decimal(value).quantize(WHOLE, rounding=ROUND_HALF_UP)):,}"


def get_price_explanation(
    percentage_difference: Decimal,
    market_average: Decimal,
    trade_category_name: str
) -> str:
    pct = to_decimal(percentage_difference)
    abs_pct = format_whole(abs(pct))
    avg = format_whole(market_average)

    if abs(pct) <= MARKET_BAND_PCT:
        return f"Your price is in line with market rates for {trade_category_name}s (avg ${avg})"

    if pct > PREMIUM_ABOVE:
        return f"Your price is {abs_pct}% above market average. Consider if premium services justify this."
    if pct > MARKET_BAND_PCT:
        return f"Your price is {abs_pct}% above market average (${avg}). Slightly higher than typical."
    if pct < -PREMIUM_ABOVE:
        return f"Your price is {abs_pct}% below market average. Very competitive, but ensure profitability."
    return f"Your price is {abs_pct}% below market average (${avg}). Competitive pricing."


def classify_market_position(percentage_difference: Decimal, band_pct: Decimal = MARKET_BAND_PCT) -> str:
    """'below' under -band, 'above' over +band, otherwise 'at' (band edges count as at-market)."""
    pct = to_decimal(percentage_difference)
    band = to_decimal(band_pct)
    if pct < -band:
        return POSITION_BELOW
    if pct > band:
        return POSITION_ABOVE
    return POSITION_AT
