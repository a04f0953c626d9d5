"""
Tests for the detail fan-out scheduler.
"""

import time

import pytest

from crawler.base import JobSummary, SessionError
from crawler.cancellation import CancelToken
from crawler.crawlers.fetcher import PageFetcher
from crawler.crawlers.session import BrowserSessionPool
from crawler.detail import DetailScheduler, compute_pool_size
from crawler.persistence import RecordWriter

from conftest import (
    FakeRepository,
    FakeSessionFactory,
    FakeSite,
    FixtureAdapter,
    detail_html,
    detail_url,
    slow_page,
    timing_out_page,
)


def summary(index: int, url: str = None) -> JobSummary:
    return JobSummary(
        title=f"백엔드 개발자 {index}",
        company=f"테스트컴퍼니{index}",
        detail_url=url if url is not None else detail_url(index),
        source_site='fixture',
        location="서울",
    )


@pytest.fixture
def scheduler_parts():
    """Factory building a scheduler over a fake site and repository."""
    schedulers = []

    def build(site, repository=None, pool_size=3, task_timeout=5.0, grace_seconds=0.5, factory=None):
        repository = repository or FakeRepository()
        pool = BrowserSessionPool(factory or FakeSessionFactory(site))
        fetcher = PageFetcher(max_attempts=3, backoff_seconds=0, load_timeout=5)
        scheduler = DetailScheduler(
            fetcher, pool, RecordWriter(repository), repository.exists_active_by_url,
            pool_size=pool_size, task_timeout=task_timeout, grace_seconds=grace_seconds,
        )
        schedulers.append(scheduler)
        return scheduler, pool, repository

    yield build
    for scheduler in schedulers:
        scheduler.shutdown()


class TestPoolSize:
    """Test compute_pool_size()."""

    @pytest.mark.parametrize("cpus,expected", [(1, 3), (3, 3), (6, 6), (8, 8), (64, 8)])
    def test_clamped(self, cpus, expected):
        assert compute_pool_size(3, 8, cpu_count=cpus) == expected


class TestDetailScheduler:
    """Test DetailScheduler.run()."""

    def test_enriches_and_saves_every_summary(self, scheduler_parts):
        site = FakeSite({detail_url(i): (detail_html(i), "채용") for i in range(5)})
        scheduler, pool, repository = scheduler_parts(site)

        result = scheduler.run(FixtureAdapter(), [summary(i) for i in range(5)])

        assert result.submitted == 5
        assert result.saved == 5
        assert len(repository.saved) == 5
        record = next(r for r in repository.saved if r.detail_url == detail_url(2))
        assert "결제 시스템" in record.description
        assert record.requirements == "Python 3년 이상, SQL 경험"
        assert record.deadline.year == 2030
        assert record.location == "서울"

    def test_existing_active_url_is_never_fetched(self, scheduler_parts):
        site = FakeSite({detail_url(i): (detail_html(i), "채용") for i in range(3)})
        repository = FakeRepository(existing={detail_url(1)})
        scheduler, _, _ = scheduler_parts(site, repository=repository)

        result = scheduler.run(FixtureAdapter(), [summary(i) for i in range(3)])

        assert site.count(detail_url(1)) == 0
        assert result.skipped_existing == 1
        assert result.submitted == 2
        assert result.saved == 2

    def test_existence_check_failure_still_fetches(self, scheduler_parts):
        site = FakeSite({detail_url(0): (detail_html(0), "채용")})
        scheduler, _, _ = scheduler_parts(site)

        def broken_exists(url):
            raise RuntimeError("database is locked")

        scheduler.exists_fn = broken_exists

        result = scheduler.run(FixtureAdapter(), [summary(0)])

        assert site.count(detail_url(0)) == 1
        assert result.saved == 1

    def test_summary_without_url_is_skipped(self, scheduler_parts):
        scheduler, _, _ = scheduler_parts(FakeSite())

        result = scheduler.run(FixtureAdapter(), [summary(0, url="")])

        assert result.skipped_no_url == 1
        assert result.submitted == 0

    def test_bounded_concurrency(self, scheduler_parts):
        pages = {detail_url(i): slow_page(0.05, detail_html(i), "채용") for i in range(20)}
        site = FakeSite(pages)
        scheduler, pool, _ = scheduler_parts(site, pool_size=3)

        result = scheduler.run(FixtureAdapter(), [summary(i) for i in range(20)])

        assert result.saved == 20
        assert site.peak_active <= 3
        assert pool.peak_count <= 3
        assert pool.active_count() == 0

    def test_sessions_released_after_batch(self, scheduler_parts):
        site = FakeSite({detail_url(i): (detail_html(i), "채용") for i in range(6)})
        factory = FakeSessionFactory(site)
        scheduler, pool, _ = scheduler_parts(site, factory=factory)

        scheduler.run(FixtureAdapter(), [summary(i) for i in range(6)])

        assert pool.active_count() == 0
        assert factory.sessions
        assert all(s.closed for s in factory.sessions)

    def test_failed_task_does_not_cancel_siblings(self, scheduler_parts):
        pages = {detail_url(i): (detail_html(i), "채용") for i in range(4)}
        pages[detail_url(2)] = RuntimeError("net::ERR_CONNECTION_REFUSED")
        site = FakeSite(pages)
        scheduler, _, repository = scheduler_parts(site)

        result = scheduler.run(FixtureAdapter(), [summary(i) for i in range(4)])

        assert result.failed == 1
        assert result.saved == 3
        assert detail_url(2) not in {r.detail_url for r in repository.saved}

    def test_session_fault_discards_session_without_retry(self, scheduler_parts):
        pages = {detail_url(0): SessionError("Target closed")}
        site = FakeSite(pages)
        factory = FakeSessionFactory(site)
        scheduler, pool, _ = scheduler_parts(site, pool_size=1, factory=factory)

        result = scheduler.run(FixtureAdapter(), [summary(0)])

        assert result.failed == 1
        assert site.count(detail_url(0)) == 1
        assert factory.sessions[0].closed

    def test_session_creation_failure_fails_task_only(self, scheduler_parts):
        site = FakeSite({detail_url(0): (detail_html(0), "채용")})
        scheduler, _, _ = scheduler_parts(site, factory=FakeSessionFactory(site, fail=True))

        result = scheduler.run(FixtureAdapter(), [summary(0), summary(1)])

        assert result.failed == 2
        assert result.saved == 0

    def test_missing_container_parses_whole_page(self, scheduler_parts):
        html = "<html><body><main>주요업무 데이터 파이프라인 구축과 운영 자격요건 SQL</main></body></html>"
        site = FakeSite({detail_url(0): (html, "채용")})
        scheduler, _, repository = scheduler_parts(site)

        scheduler.run(FixtureAdapter(), [summary(0)])

        assert "데이터 파이프라인" in repository.saved[0].description

    def test_load_timeout_leaves_record_unsaved(self, scheduler_parts):
        pages = {detail_url(i): (detail_html(i), "채용") for i in range(3)}
        pages[detail_url(1)] = timing_out_page()
        site = FakeSite(pages)
        scheduler, _, repository = scheduler_parts(site, task_timeout=0.3)

        started = time.monotonic()
        result = scheduler.run(FixtureAdapter(), [summary(i) for i in range(3)])
        elapsed = time.monotonic() - started

        assert result.timeouts == 1
        assert result.saved == 2
        assert detail_url(1) not in {r.detail_url for r in repository.saved}
        # task timeout x attempt ceiling + slack
        assert elapsed < 0.3 * 3 + 1.0

    def test_hung_load_is_abandoned(self, scheduler_parts):
        site = FakeSite({detail_url(0): slow_page(3.0, detail_html(0), "채용")})
        scheduler, _, repository = scheduler_parts(site, pool_size=1, task_timeout=0.2, grace_seconds=0.2)

        started = time.monotonic()
        result = scheduler.run(FixtureAdapter(), [summary(0)])
        elapsed = time.monotonic() - started

        assert elapsed < 2.0
        assert result.timeouts == 1
        assert repository.saved == []

    def test_abandoned_worker_quits_its_own_session(self, scheduler_parts):
        site = FakeSite({detail_url(0): slow_page(1.0, detail_html(0), "채용")})
        factory = FakeSessionFactory(site)
        scheduler, pool, _ = scheduler_parts(site, pool_size=1, task_timeout=0.2, grace_seconds=0.2, factory=factory)

        result = scheduler.run(FixtureAdapter(), [summary(0)])
        assert result.timeouts == 1
        assert site.active == 1

        pool.close()
        session = factory.sessions[0]
        assert not session.closed

        deadline = time.monotonic() + 5
        while not session.closed and time.monotonic() < deadline:
            time.sleep(0.05)

        assert session.closed
        assert session.quit_thread == session.owner_thread
        assert pool.active_count() == 0

    def test_cancel_stops_pending_tasks(self, scheduler_parts):
        token = CancelToken()

        def cancel_then_load(timeout):
            token.cancel()
            return detail_html(0), "채용"

        pages = {detail_url(i): (detail_html(i), "채용") for i in range(1, 10)}
        pages[detail_url(0)] = cancel_then_load
        site = FakeSite(pages)
        scheduler, pool, _ = scheduler_parts(site, pool_size=1)

        result = scheduler.run(FixtureAdapter(), [summary(i) for i in range(10)], token)

        assert result.saved <= 1
        assert result.cancelled >= 8
        assert len(site.loads) <= 2
        assert pool.active_count() == 0

    def test_rerun_is_idempotent(self, scheduler_parts):
        site = FakeSite({detail_url(i): (detail_html(i), "채용") for i in range(4)})
        scheduler, _, repository = scheduler_parts(site)
        summaries = [summary(i) for i in range(4)]

        scheduler.run(FixtureAdapter(), summaries)
        second = scheduler.run(FixtureAdapter(), summaries)

        assert len(repository.saved) == 4
        assert second.skipped_existing == 4
        assert len(site.loads) == 4
