"""Data Transfer Objects for price benchmarking.

Money values are Decimals; ``to_dict()`` renders them as strings so no
precision is lost on the way to JSON.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from database.models import PriceRating
from core.utils import to_jsonable


@dataclass
class PriceBenchmarkDTO:
    """Market-rate statistics for one trade category, optionally one region."""
    trade_category_id: Any
    trade_category_name: str
    location: Optional[str]  # None when computed category-wide
    min_price: Decimal
    max_price: Decimal
    average_price: Decimal
    median_price: Decimal
    sample_size: int
    last_updated: datetime

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class QuotePriceComparisonDTO:
    quote_id: Any
    your_price: Decimal
    market_average: Decimal
    percentage_difference: Decimal
    rating: PriceRating
    explanation: str
    benchmark: Optional[PriceBenchmarkDTO] = None

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)


@dataclass
class TradieQuotesComparisonDTO:
    """A tradie's recent quotes against the market, with position counts.

    average_position and the counts cover only quotes that had a benchmark.
    """
    quotes: List[QuotePriceComparisonDTO] = field(default_factory=list)
    average_position: Decimal = Decimal("0")
    below_market_count: int = 0
    at_market_count: int = 0
    above_market_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)
