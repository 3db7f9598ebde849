"""
Tests for PriceBenchmarkEngine with a mocked MarketplaceRepository.
"""

import threading
import unittest
import uuid
from decimal import Decimal
from unittest.mock import MagicMock

from database.models import PriceRating
from core.config_loader import BenchmarkConfig
from core.exceptions import OperationCancelledError
from core.benchmarking.service import NO_MARKET_DATA_EXPLANATION, PriceBenchmarkEngine
from core.utils import months_ago
from tests.fixtures.marketplace import NOW, make_category, make_job, make_quote


def _prices(*values):
    return [Decimal(v) for v in values]


class TestGetBenchmark(unittest.TestCase):

    def setUp(self):
        self.category = make_category(name="Electrician")
        self.repo = MagicMock()
        self.repo.jobs.get_trade_category.return_value = self.category
        self.engine = PriceBenchmarkEngine(self.repo)

    def test_unknown_category(self):
        self.repo.jobs.get_trade_category.return_value = None

        self.assertIsNone(self.engine.get_benchmark(uuid.uuid4(), "2000", now=NOW))
        self.repo.quotes.get_benchmark_prices.assert_not_called()

    def test_regional_benchmark(self):
        self.repo.quotes.get_benchmark_prices.return_value = _prices("500", "100", "300", "200", "400")

        benchmark = self.engine.get_benchmark(self.category.id, " 2000 ", now=NOW)

        self.repo.quotes.get_benchmark_prices.assert_called_once_with(
            self.category.id, months_ago(6, NOW), postcode_prefix="20"
        )
        self.assertEqual(benchmark.location, "2000")
        self.assertEqual(benchmark.trade_category_name, "Electrician")
        self.assertEqual(benchmark.min_price, Decimal("100"))
        self.assertEqual(benchmark.max_price, Decimal("500"))
        self.assertEqual(benchmark.median_price, Decimal("300"))
        self.assertEqual(benchmark.average_price, Decimal("300.00"))
        self.assertEqual(benchmark.sample_size, 5)
        self.assertEqual(benchmark.last_updated, NOW)

    def test_falls_back_to_category_when_region_is_thin(self):
        def prices(category_id, since, postcode_prefix=None):
            if postcode_prefix:
                return _prices("100", "200", "300", "400")
            return _prices("100", "200", "300", "400", "500", "600")

        self.repo.quotes.get_benchmark_prices.side_effect = prices

        benchmark = self.engine.get_benchmark(self.category.id, "2000", now=NOW)

        self.assertEqual(self.repo.quotes.get_benchmark_prices.call_count, 2)
        self.assertIsNone(benchmark.location)
        self.assertEqual(benchmark.sample_size, 6)
        self.assertEqual(benchmark.median_price, Decimal("350.00"))
        self.assertEqual(benchmark.average_price, Decimal("350.00"))

    def test_not_enough_data_anywhere(self):
        self.repo.quotes.get_benchmark_prices.return_value = _prices("100", "200", "300", "400")

        self.assertIsNone(self.engine.get_benchmark(self.category.id, "2000", now=NOW))
        self.assertEqual(self.repo.quotes.get_benchmark_prices.call_count, 2)

    def test_no_postcode_queries_category_once(self):
        self.repo.quotes.get_benchmark_prices.return_value = _prices("1", "2", "3", "4", "5")

        benchmark = self.engine.get_benchmark(self.category.id, None, now=NOW)

        self.repo.quotes.get_benchmark_prices.assert_called_once_with(
            self.category.id, months_ago(6, NOW), postcode_prefix=None
        )
        self.assertIsNone(benchmark.location)

    def test_short_or_blank_postcode_is_ignored(self):
        self.repo.quotes.get_benchmark_prices.return_value = _prices("1", "2", "3", "4", "5")

        for postcode in ("2", "   "):
            with self.subTest(postcode=postcode):
                benchmark = self.engine.get_benchmark(self.category.id, postcode, now=NOW)
                self.assertIsNone(benchmark.location)
                _, kwargs = self.repo.quotes.get_benchmark_prices.call_args
                self.assertIsNone(kwargs['postcode_prefix'])

    def test_config_sample_size_and_prefix(self):
        engine = PriceBenchmarkEngine(self.repo, BenchmarkConfig(min_sample_size=2, postcode_prefix_length=3))
        self.repo.quotes.get_benchmark_prices.return_value = _prices("10", "20")

        benchmark = engine.get_benchmark(self.category.id, "2010", now=NOW)

        _, kwargs = self.repo.quotes.get_benchmark_prices.call_args
        self.assertEqual(kwargs['postcode_prefix'], "201")
        self.assertEqual(benchmark.sample_size, 2)

    def test_cancelled(self):
        stop_event = threading.Event()
        stop_event.set()

        with self.assertRaises(OperationCancelledError):
            self.engine.get_benchmark(self.category.id, "2000", stop_event=stop_event)


class TestQuoteComparisons(unittest.TestCase):

    def setUp(self):
        self.plumbing = make_category(name="Plumber")
        self.roofing = make_category(name="Roofer")
        categories = {self.plumbing.id: self.plumbing, self.roofing.id: self.roofing}

        self.repo = MagicMock()
        self.repo.jobs.get_trade_category.side_effect = categories.get
        self.repo.quotes.get_benchmark_prices.side_effect = self._prices
        self.engine = PriceBenchmarkEngine(self.repo)

    def _prices(self, category_id, since, postcode_prefix=None):
        if category_id == self.plumbing.id:
            return _prices("900", "950", "1000", "1050", "1100")
        return []

    def _quote(self, category, labour, materials="0"):
        job = make_job(trade_category_id=category.id, postcode="2000")
        job.trade_category = category
        return make_quote(job=job, labour_cost=Decimal(labour), materials_cost=Decimal(materials))

    def test_unknown_quote(self):
        self.repo.quotes.get_by_id.return_value = None
        self.assertIsNone(self.engine.compare_quote_price(uuid.uuid4()))

    def test_quote_at_market(self):
        quote = self._quote(self.plumbing, "800", "200")
        self.repo.quotes.get_by_id.return_value = quote

        comparison = self.engine.compare_quote_price(quote.id, now=NOW)

        self.assertEqual(comparison.your_price, Decimal("1000"))
        self.assertEqual(comparison.market_average, Decimal("1000.00"))
        self.assertEqual(comparison.percentage_difference, Decimal("0.0"))
        self.assertEqual(comparison.rating, PriceRating.AT_MARKET)
        self.assertEqual(
            comparison.explanation, "Your price is in line with market rates for Plumbers (avg $1,000)"
        )
        self.assertEqual(comparison.benchmark.location, "2000")

    def test_quote_without_market_data(self):
        quote = self._quote(self.roofing, "5000")
        self.repo.quotes.get_by_id.return_value = quote

        comparison = self.engine.compare_quote_price(quote.id, now=NOW)

        self.assertEqual(comparison.rating, PriceRating.UNKNOWN)
        self.assertEqual(comparison.market_average, Decimal("0"))
        self.assertEqual(comparison.percentage_difference, Decimal("0"))
        self.assertEqual(comparison.explanation, NO_MARKET_DATA_EXPLANATION)
        self.assertIsNone(comparison.benchmark)
        self.assertEqual(comparison.to_dict()['rating'], "Unknown")

    def test_tradie_comparison_counts_only_benchmarked_quotes(self):
        tradie_id = uuid.uuid4()
        quotes = [
            self._quote(self.plumbing, "1100"),
            self._quote(self.plumbing, "900"),
            self._quote(self.plumbing, "1020"),
            self._quote(self.roofing, "5000"),
        ]
        self.repo.quotes.get_recent_quotes_for_tradie.return_value = quotes

        result = self.engine.get_tradie_quotes_comparison(tradie_id, now=NOW)

        self.repo.quotes.get_recent_quotes_for_tradie.assert_called_once_with(tradie_id, months_ago(3, NOW))
        self.assertEqual(len(result.quotes), 4)
        self.assertEqual([q.quote_id for q in result.quotes], [q.id for q in quotes])
        self.assertEqual(result.above_market_count, 1)
        self.assertEqual(result.below_market_count, 1)
        self.assertEqual(result.at_market_count, 1)
        # (10.0 - 10.0 + 2.0) / 3
        self.assertEqual(result.average_position, Decimal("0.7"))
        self.assertEqual(result.quotes[3].rating, PriceRating.UNKNOWN)

    def test_benchmarks_are_reused_within_one_comparison(self):
        self.repo.quotes.get_recent_quotes_for_tradie.return_value = [
            self._quote(self.plumbing, "1000"),
            self._quote(self.plumbing, "1000"),
        ]

        self.engine.get_tradie_quotes_comparison(uuid.uuid4(), now=NOW)

        self.assertEqual(self.repo.jobs.get_trade_category.call_count, 1)
        self.assertEqual(self.repo.quotes.get_benchmark_prices.call_count, 1)

    def test_no_quotes(self):
        self.repo.quotes.get_recent_quotes_for_tradie.return_value = []

        result = self.engine.get_tradie_quotes_comparison(uuid.uuid4(), now=NOW)

        self.assertEqual(result.quotes, [])
        self.assertEqual(result.average_position, Decimal("0"))
        self.assertEqual(
            (result.below_market_count, result.at_market_count, result.above_market_count), (0, 0, 0)
        )


if __name__ == '__main__':
    unittest.main()
