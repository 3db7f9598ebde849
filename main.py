import time
import logging
import signal
import sys
import json
import uuid
import argparse
import threading
from functools import partial

from core.config_loader import load_config, AppConfig
from core.exceptions import OperationCancelledError, ServiceException
from core.lead_scoring import LeadScoringService, recalculate_all_tradies
from core.benchmarking import PriceBenchmarkEngine
from core.customer_quality import summarize
from database.database import create_session_factory
from database.init_db import init_db
from database.uow import marketplace_uow

logger = logging.getLogger(__name__)

# Set by SIGINT/SIGTERM; every service call checks it at its I/O boundaries
stop_event = threading.Event()


def signal_handler(sig, frame):
    logger.info("Shutdown signal received")
    stop_event.set()


def configure_logging(config: AppConfig):
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def emit(payload) -> int:
    print(json.dumps(payload, indent=2))
    return 0


def not_found(message: str) -> int:
    print(json.dumps({"error": message}, indent=2))
    return 1


def cmd_recalculate(args, config, uow):
    with uow() as repo:
        count = LeadScoringService(repo, config.lead_scoring).recalculate_all_scores_for_tradie(
            args.tradie, stop_event=stop_event
        )
    return emit({"tradie_id": str(args.tradie), "scores": count})


def cmd_recalculate_all(args, config, uow):
    count = recalculate_all_tradies(uow, config.lead_scoring, stop_event=stop_event)
    return emit({"scores": count})


def cmd_customer_quality(args, config, uow):
    with uow() as repo:
        quality = LeadScoringService(repo, config.lead_scoring).recalculate_customer_quality(
            args.customer, stop_event=stop_event
        )
        if quality is None:
            return not_found("Customer not found")
        summary = summarize(quality)
    return emit(summary.to_dict())


def cmd_leads(args, config, uow):
    with uow() as repo:
        page = LeadScoringService(repo, config.lead_scoring).get_scored_leads(
            args.tradie,
            page=args.page,
            page_size=args.page_size,
            min_score=args.min_score,
            rating=args.rating,
            trade_category_id=args.category,
            refresh=args.refresh,
            stop_event=stop_event
        )
    if page is None:
        return not_found("Tradie profile not found")
    return emit(page.to_dict())


def cmd_job_score(args, config, uow):
    with uow() as repo:
        detail = LeadScoringService(repo, config.lead_scoring).get_job_score(
            args.tradie, args.job, stop_event=stop_event
        )
    if detail is None:
        return not_found("Tradie profile or job not found")
    return emit(detail.to_dict())


def cmd_benchmark(args, config, uow):
    with uow() as repo:
        benchmark = PriceBenchmarkEngine(repo, config.benchmark).get_benchmark(
            args.category, postcode=args.postcode, stop_event=stop_event
        )
    if benchmark is None:
        return not_found("Not enough market data available for this trade category")
    return emit(benchmark.to_dict())


def cmd_compare_quote(args, config, uow):
    with uow() as repo:
        comparison = PriceBenchmarkEngine(repo, config.benchmark).compare_quote_price(
            args.quote, stop_event=stop_event
        )
    if comparison is None:
        return not_found("Quote not found")
    return emit(comparison.to_dict())


def cmd_quotes_comparison(args, config, uow):
    with uow() as repo:
        result = PriceBenchmarkEngine(repo, config.benchmark).get_tradie_quotes_comparison(
            args.tradie, stop_event=stop_event
        )
    return emit(result.to_dict())


def cmd_serve_refresh(args, config, uow):
    interval = config.schedule.interval_seconds

    cycle_count = 0
    while not stop_event.is_set():
        cycle_count += 1
        cycle_start = time.time()
        logger.info(f"=== Starting refresh cycle #{cycle_count} ===")
        try:
            recalculate_all_tradies(uow, config.lead_scoring, stop_event=stop_event)
        except OperationCancelledError:
            break
        except Exception as e:
            logger.error(f"Error in refresh loop: {e}", exc_info=True)

        cycle_elapsed = time.time() - cycle_start
        if not stop_event.is_set():
            logger.info(f"=== Cycle #{cycle_count} completed in {cycle_elapsed:.2f}s. Sleeping for {interval} seconds... ===")
            # Returns early on shutdown
            stop_event.wait(interval)

    logger.info("Refresh loop stopped")
    return 0


def cmd_init_db(args, config, uow):
    init_db(config.database.url)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tradie lead scoring and price benchmarking")
    parser.add_argument('--config', type=str, default='config.yaml', help='Path to config YAML')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('recalculate', help="Recalculate one tradie's lead scores")
    p.add_argument('--tradie', type=uuid.UUID, required=True)
    p.set_defaults(func=cmd_recalculate)

    p = sub.add_parser('recalculate-all', help='Recalculate lead scores for every tradie')
    p.set_defaults(func=cmd_recalculate_all)

    p = sub.add_parser('customer-quality', help="Rebuild a customer's quality summary")
    p.add_argument('--customer', type=uuid.UUID, required=True)
    p.set_defaults(func=cmd_customer_quality)

    p = sub.add_parser('leads', help='List scored leads for a tradie')
    p.add_argument('--tradie', type=uuid.UUID, required=True)
    p.add_argument('--page', type=int, default=1)
    p.add_argument('--page-size', type=int, default=None)
    p.add_argument('--min-score', type=int, default=None)
    p.add_argument('--rating', type=str, default=None, help='Excellent, Good, Fair or Low')
    p.add_argument('--category', type=uuid.UUID, default=None)
    p.add_argument('--refresh', action='store_true')
    p.set_defaults(func=cmd_leads)

    p = sub.add_parser('job-score', help='Score breakdown of one job for a tradie')
    p.add_argument('--tradie', type=uuid.UUID, required=True)
    p.add_argument('--job', type=uuid.UUID, required=True)
    p.set_defaults(func=cmd_job_score)

    p = sub.add_parser('benchmark', help='Market price benchmark for a trade category')
    p.add_argument('--category', type=uuid.UUID, required=True)
    p.add_argument('--postcode', type=str, default=None)
    p.set_defaults(func=cmd_benchmark)

    p = sub.add_parser('compare-quote', help="Compare a quote's price with the market")
    p.add_argument('--quote', type=uuid.UUID, required=True)
    p.set_defaults(func=cmd_compare_quote)

    p = sub.add_parser('quotes-comparison', help="Compare a tradie's recent quotes with the market")
    p.add_argument('--tradie', type=uuid.UUID, required=True)
    p.set_defaults(func=cmd_quotes_comparison)

    p = sub.add_parser('serve-refresh', help='Recalculate all tradies on a schedule until stopped')
    p.set_defaults(func=cmd_serve_refresh)

    p = sub.add_parser('init-db', help='Create database tables')
    p.set_defaults(func=cmd_init_db)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    configure_logging(config)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    uow = partial(marketplace_uow, create_session_factory(config.database.url))

    try:
        return args.func(args, config, uow)
    except OperationCancelledError:
        logger.warning("Interrupted; no changes were committed")
        return 130
    except ServiceException as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
