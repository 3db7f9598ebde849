#!/usr/bin/env python3
"""
Price Benchmark Service - market rates from accepted and completed quotes.

Benchmarks are computed on demand from the last six months of quote
history for a trade category, narrowed to a postcode region when enough
samples exist there and widened to the whole category otherwise.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Any, Dict, Optional, Tuple
import logging
import threading

from database.models import JobQuote, PriceRating
from database.repository import MarketplaceRepository
from core.config_loader import BenchmarkConfig
from core.utils import check_cancelled, months_ago, to_decimal, utc_now
from core.benchmarking import statistics
from core.benchmarking.dto import (
    PriceBenchmarkDTO, QuotePriceComparisonDTO, TradieQuotesComparisonDTO
)

logger = logging.getLogger(__name__)

NO_MARKET_DATA_EXPLANATION = "Not enough market data available for comparison"

BenchmarkCache = Dict[Tuple[Any, Optional[str]], Optional[PriceBenchmarkDTO]]


class PriceBenchmarkEngine:
    """Benchmarks and quote comparisons for one unit of work (read-only)."""

    def __init__(self, repo: MarketplaceRepository, config: Optional[BenchmarkConfig] = None):
        self.repo = repo
        self.config = config or BenchmarkConfig()

    def _postcode_prefix(self, postcode: Optional[str]) -> Optional[str]:
        if not postcode or not postcode.strip():
            return None
        postcode = postcode.strip()
        if len(postcode) < self.config.postcode_prefix_length:
            return None
        return postcode[:self.config.postcode_prefix_length]

    def get_benchmark(
        self,
        trade_category_id: Any,
        postcode: Optional[str] = None,
        stop_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None
    ) -> Optional[PriceBenchmarkDTO]:
        """
        Benchmark for a category, regional when a usable postcode is given.

        Returns None for an unknown category or when even the category-wide
        sample is smaller than the minimum sample size. A regional sample
        that is too small falls back once to the category-wide query, and
        the result then carries location=None.
        """
        now = now or utc_now()

        check_cancelled(stop_event, "category lookup")
        category = self.repo.jobs.get_trade_category(trade_category_id)
        if category is None:
            return None

        since = months_ago(self.config.lookback_months, now)
        prefix = self._postcode_prefix(postcode)

        check_cancelled(stop_event, "benchmark price query")
        prices = self.repo.quotes.get_benchmark_prices(trade_category_id, since, postcode_prefix=prefix)
        location = postcode.strip() if prefix else None

        if len(prices) < self.config.min_sample_size and prefix is not None:
            logger.info(
                f"Only {len(prices)} quotes for {category.name} in postcode region {prefix}; "
                f"falling back to category-wide benchmark"
            )
            check_cancelled(stop_event, "category-wide price query")
            prices = self.repo.quotes.get_benchmark_prices(trade_category_id, since, postcode_prefix=None)
            location = None

        if len(prices) < self.config.min_sample_size:
            logger.debug(f"Not enough quotes for a {category.name} benchmark ({len(prices)})")
            return None

        sorted_prices = sorted(to_decimal(p) for p in prices)
        return PriceBenchmarkDTO(
            trade_category_id=trade_category_id,
            trade_category_name=category.name,
            location=location,
            min_price=sorted_prices[0],
            max_price=sorted_prices[-1],
            average_price=statistics.calculate_average(sorted_prices),
            median_price=statistics.calculate_median(sorted_prices),
            sample_size=len(sorted_prices),
            last_updated=now,
        )

    def _compare(
        self,
        quote: JobQuote,
        cache: BenchmarkCache,
        stop_event: Optional[threading.Event],
        now: datetime
    ) -> QuotePriceComparisonDTO:
        job = quote.job
        your_price = to_decimal(quote.total_cost)

        key = (job.trade_category_id, job.postcode)
        if key not in cache:
            cache[key] = self.get_benchmark(job.trade_category_id, job.postcode, stop_event=stop_event, now=now)
        benchmark = cache[key]

        if benchmark is None:
            return QuotePriceComparisonDTO(
                quote_id=quote.id,
                your_price=your_price,
                market_average=Decimal("0"),
                percentage_difference=Decimal("0"),
                rating=PriceRating.UNKNOWN,
                explanation=NO_MARKET_DATA_EXPLANATION,
                benchmark=None,
            )

        pct = statistics.calculate_percentage_difference(your_price, benchmark.average_price)
        category_name = job.trade_category.name if job.trade_category is not None else benchmark.trade_category_name
        return QuotePriceComparisonDTO(
            quote_id=quote.id,
            your_price=your_price,
            market_average=benchmark.average_price,
            percentage_difference=pct,
            rating=statistics.get_price_rating(pct),
            explanation=statistics.get_price_explanation(pct, benchmark.average_price, category_name),
            benchmark=benchmark,
        )

    def compare_quote_price(
        self,
        quote_id: Any,
        stop_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None
    ) -> Optional[QuotePriceComparisonDTO]:
        """Compare one quote's price with its market. None for an unknown quote.

        Without a benchmark the result is a sentinel: rating UNKNOWN with
        market_average and percentage_difference both 0. Check `rating`
        before reading the percentage; 0 there does not mean "at market".
        """
        check_cancelled(stop_event, "quote lookup")
        quote = self.repo.quotes.get_by_id(quote_id)
        if quote is None:
            return None
        return self._compare(quote, {}, stop_event, now or utc_now())

    def get_tradie_quotes_comparison(
        self,
        tradie_id: Any,
        stop_event: Optional[threading.Event] = None,
        now: Optional[datetime] = None
    ) -> TradieQuotesComparisonDTO:
        """
        Compare each of the tradie's recent quotes with the market, newest first.

        Quotes without a benchmark are listed but excluded from the average
        position and the below/at/above counts.
        """
        now = now or utc_now()

        check_cancelled(stop_event, "tradie quote lookup")
        quotes = self.repo.quotes.get_recent_quotes_for_tradie(
            tradie_id, months_ago(self.config.comparison_lookback_months, now)
        )

        result = TradieQuotesComparisonDTO()
        cache: BenchmarkCache = {}
        position_sum = Decimal("0")
        valid = 0
        band = Decimal(str(self.config.at_market_band_pct))

        for quote in quotes:
            comparison = self._compare(quote, cache, stop_event, now)
            result.quotes.append(comparison)
            if comparison.benchmark is None:
                continue

            position_sum += comparison.percentage_difference
            valid += 1
            position = statistics.classify_market_position(comparison.percentage_difference, band)
            if position == statistics.POSITION_BELOW:
                result.below_market_count += 1
            elif position == statistics.POSITION_ABOVE:
                result.above_market_count += 1
            else:
                result.at_market_count += 1

        if valid:
            result.average_position = (position_sum / valid).quantize(
                statistics.ONE_PLACE, rounding=ROUND_HALF_EVEN
            )

        logger.info(
            f"Compared {len(quotes)} quotes for tradie {tradie_id} "
            f"({valid} with market data, average position {result.average_position}%)"
        )
        return result
