"""
Integration tests for lead scoring, customer quality and price benchmarks
against a real PostgreSQL database.

Run with: python -m pytest tests/integration/test_lead_scoring_db.py -v -m db
"""

import threading
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest

from database.models import (
    JobStatus, LeadScore, Milestone, Payment, PaymentStatus, QuoteStatus, Review,
    SubscriptionTier, User
)
from database.uow import marketplace_uow
from core.benchmarking import PriceBenchmarkEngine
from core.exceptions import OperationCancelledError
from core.lead_scoring import LeadScoringService, recalculate_all_tradies
from tests.fixtures.marketplace import (
    NOW, make_category, make_job, make_licence, make_quote, make_tradie
)

pytestmark = pytest.mark.db


def _user(name):
    return User(id=uuid.uuid4(), email=f"{name}-{uuid.uuid4().hex[:8]}@example.com", first_name=name)


@pytest.fixture
def marketplace(db_session_factory):
    """A customer, a licensed tradie in Sydney and three open jobs at 5, 30 and 60 km."""
    customer = _user("Casey")
    tradie_user = _user("Robin")
    category = make_category(name="Electrician")

    with marketplace_uow(db_session_factory) as repo:
        repo.db.add_all([customer, tradie_user, category])
        repo.flush()

        tradie = make_tradie(
            user_id=tradie_user.id,
            service_radius_km=25,
            tier=SubscriptionTier.BUSINESS,
            licences=[make_licence(category.id)],
        )
        jobs = [
            make_job(trade_category_id=category.id, customer_id=customer.id, distance_km=d,
                     preferred_start_date=NOW + timedelta(days=2))
            for d in (5.0, 30.0, 60.0)
        ]
        repo.db.add(tradie)
        repo.db.add_all(jobs)

    return {
        "customer_id": customer.id,
        "tradie_id": tradie_user.id,
        "category_id": category.id,
        "job_ids": [job.id for job in jobs],
    }


def _stored_scores(factory, tradie_id):
    with marketplace_uow(factory) as repo:
        return [
            (s.job_id, s.total_score, s.sub_scores)
            for s in repo.lead_scores.get_scores_for_tradie(tradie_id)
        ]


def test_recalculation_materializes_eligible_jobs(db_session_factory, marketplace):
    with marketplace_uow(db_session_factory) as repo:
        count = LeadScoringService(repo).recalculate_all_scores_for_tradie(marketplace["tradie_id"], now=NOW)

    assert count == 2
    scores = _stored_scores(db_session_factory, marketplace["tradie_id"])
    assert {job_id for job_id, _, _ in scores} == set(marketplace["job_ids"][:2])
    for _, total, sub_scores in scores:
        assert total == sum(sub_scores)


def test_recalculation_is_idempotent(db_session_factory, marketplace):
    for _ in range(2):
        with marketplace_uow(db_session_factory) as repo:
            LeadScoringService(repo).recalculate_all_scores_for_tradie(marketplace["tradie_id"], now=NOW)
        scores = _stored_scores(db_session_factory, marketplace["tradie_id"])
        assert len(scores) == 2

    with marketplace_uow(db_session_factory) as repo:
        LeadScoringService(repo).recalculate_all_scores_for_tradie(marketplace["tradie_id"], now=NOW)
    assert sorted(_stored_scores(db_session_factory, marketplace["tradie_id"])) == sorted(scores)


def test_cancelled_transaction_keeps_previous_scores(db_session_factory, marketplace):
    with marketplace_uow(db_session_factory) as repo:
        LeadScoringService(repo).recalculate_all_scores_for_tradie(marketplace["tradie_id"], now=NOW)
    before = _stored_scores(db_session_factory, marketplace["tradie_id"])

    with pytest.raises(OperationCancelledError):
        with marketplace_uow(db_session_factory) as repo:
            repo.lead_scores.delete_for_tradie(marketplace["tradie_id"])
            raise OperationCancelledError("stopped mid-recalculation")

    assert _stored_scores(db_session_factory, marketplace["tradie_id"]) == before


def test_scored_leads_page(db_session_factory, marketplace):
    with marketplace_uow(db_session_factory) as repo:
        page = LeadScoringService(repo).get_scored_leads(marketplace["tradie_id"], page_size=1)
        result = page.to_dict()

    assert page.total_count == 2
    assert len(page.leads) == 1
    assert result["leads"][0]["job_id"] == str(marketplace["job_ids"][0])
    assert result["leads"][0]["customer_name"] == "Casey"
    assert result["leads"][0]["trade_category"] == "Electrician"
    assert page.stats.excellent_leads + page.stats.good_leads + page.stats.fair_leads + page.stats.low_leads == 2


def test_closed_jobs_are_hidden_from_leads(db_session_factory, marketplace):
    with marketplace_uow(db_session_factory) as repo:
        LeadScoringService(repo).recalculate_all_scores_for_tradie(marketplace["tradie_id"], now=NOW)
        job = repo.jobs.get_by_id(marketplace["job_ids"][0])
        job.status = JobStatus.COMPLETED

    with marketplace_uow(db_session_factory) as repo:
        page = LeadScoringService(repo).get_scored_leads(marketplace["tradie_id"])

    assert page.total_count == 1
    assert page.leads[0].job_id == marketplace["job_ids"][1]


def test_job_score_is_persisted_on_first_request(db_session_factory, marketplace):
    job_id = marketplace["job_ids"][1]
    with marketplace_uow(db_session_factory) as repo:
        detail = LeadScoringService(repo).get_job_score(marketplace["tradie_id"], job_id, now=NOW)

    assert detail.distance_score == 4
    with marketplace_uow(db_session_factory) as repo:
        stored = repo.lead_scores.get_score(marketplace["tradie_id"], job_id)
        assert isinstance(stored, LeadScore)
        assert stored.total_score == detail.total_score


def test_job_score_outside_window_is_not_persisted(db_session_factory, marketplace):
    job_id = marketplace["job_ids"][2]
    with marketplace_uow(db_session_factory) as repo:
        detail = LeadScoringService(repo).get_job_score(marketplace["tradie_id"], job_id, now=NOW)

    assert detail.distance_score == 0
    with marketplace_uow(db_session_factory) as repo:
        assert repo.lead_scores.get_score(marketplace["tradie_id"], job_id) is None


def test_concurrent_recalculations_for_one_tradie_both_commit(db_session_factory, marketplace):
    barrier = threading.Barrier(2)
    errors = []
    counts = []

    def recalculate():
        try:
            barrier.wait(timeout=10)
            with marketplace_uow(db_session_factory) as repo:
                counts.append(
                    LeadScoringService(repo).recalculate_all_scores_for_tradie(marketplace["tradie_id"], now=NOW)
                )
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=recalculate) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert errors == []
    assert counts == [2, 2]
    assert len(_stored_scores(db_session_factory, marketplace["tradie_id"])) == 2


def test_recalculate_all_tradies(db_session_factory, marketplace):
    total = recalculate_all_tradies(lambda: marketplace_uow(db_session_factory))

    assert total == 2


def test_customer_quality_from_history(db_session_factory, marketplace):
    with marketplace_uow(db_session_factory) as repo:
        job = repo.jobs.get_by_id(marketplace["job_ids"][0])
        job.status = JobStatus.COMPLETED
        job.budget_max = Decimal("1200.00")
        first = Milestone(job_id=job.id, amount=Decimal("600.00"))
        second = Milestone(job_id=job.id, amount=Decimal("600.00"))
        repo.db.add_all([first, second])
        repo.flush()
        repo.db.add_all([
            Payment(milestone_id=first.id, amount=Decimal("600.00"), status=PaymentStatus.RELEASED),
            Payment(milestone_id=second.id, amount=Decimal("600.00"), status=PaymentStatus.REFUNDED),
            Review(job_id=job.id, reviewer_id=marketplace["customer_id"],
                   reviewee_id=marketplace["tradie_id"], rating=5),
        ])

    with marketplace_uow(db_session_factory) as repo:
        quality = LeadScoringService(repo).recalculate_customer_quality(marketplace["customer_id"], now=NOW)
        assert quality.total_jobs_posted == 3
        assert quality.jobs_completed == 1
        assert quality.average_job_value == Decimal("1200.00")
        assert quality.payment_reliability_score == Decimal("0.50")
        assert quality.average_rating_given == Decimal("5.00")

    with marketplace_uow(db_session_factory) as repo:
        assert repo.customers.get_quality(marketplace["customer_id"]) is not None


def test_benchmark_regional_and_fallback(db_session_factory, marketplace):
    with marketplace_uow(db_session_factory) as repo:
        tradie_id = marketplace["tradie_id"]
        customer_id = marketplace["customer_id"]
        category_id = marketplace["category_id"]

        regional = [
            make_job(trade_category_id=category_id, customer_id=customer_id, postcode="2010",
                     status=JobStatus.ACCEPTED)
            for _ in range(5)
        ]
        elsewhere = make_job(trade_category_id=category_id, customer_id=customer_id, postcode="3000",
                             status=JobStatus.COMPLETED)
        repo.db.add_all(regional + [elsewhere])
        repo.flush()

        quotes = [
            make_quote(job=job, labour_cost=Decimal(price), materials_cost=Decimal("0"),
                       status=QuoteStatus.ACCEPTED, tradie_id=tradie_id, created_at=NOW - timedelta(days=10))
            for job, price in zip(regional, ("100", "200", "300", "400", "500"))
        ]
        # Pending quote on a completed job still counts
        quotes.append(make_quote(job=elsewhere, labour_cost=Decimal("600"), materials_cost=Decimal("0"),
                                 status=QuoteStatus.PENDING, tradie_id=tradie_id,
                                 created_at=NOW - timedelta(days=10)))
        # Excluded: rejected quote on an open job, and an accepted quote older than six months
        quotes.append(make_quote(job=regional[0], labour_cost=Decimal("9999"), status=QuoteStatus.REJECTED,
                                 tradie_id=tradie_id, created_at=NOW - timedelta(days=10)))
        quotes.append(make_quote(job=regional[1], labour_cost=Decimal("9999"), status=QuoteStatus.ACCEPTED,
                                 tradie_id=tradie_id, created_at=NOW - timedelta(days=200)))
        repo.db.add_all(quotes)

    with marketplace_uow(db_session_factory) as repo:
        engine = PriceBenchmarkEngine(repo)
        regional_benchmark = engine.get_benchmark(category_id, "2000", now=NOW)
        fallback_benchmark = engine.get_benchmark(category_id, "3000", now=NOW)

    assert regional_benchmark.location == "2000"
    assert regional_benchmark.sample_size == 5
    assert regional_benchmark.average_price == Decimal("300.00")

    assert fallback_benchmark.location is None
    assert fallback_benchmark.sample_size == 6
    assert fallback_benchmark.median_price == Decimal("350.00")
