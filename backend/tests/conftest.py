"""
Pytest configuration and fixtures for the job crawler tests.
"""

import threading
import time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.config import Settings
from api.database import Base, get_db
from api.repository import JobPostingRepository
from api import main
from api.main import app, get_manager
from crawler.base import SessionError, SiteConfig
from crawler.manager import CrawlManager
from crawler.sites.common import JobBoardAdapter


# Create an in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override the get_db dependency for testing."""
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


# ============================================================
# FIXTURE JOB BOARD
# ============================================================

FIXTURE_CONFIG = SiteConfig(
    id='fixture',
    name='Fixture Board',
    url_template='https://jobs.test/list?page={page}',
    base_url='https://jobs.test',
    listing_selectors=('.missing-card', '.job'),
    detail_selectors=('.detail',),
    max_pages=3,
    min_delay=0.0,
    max_delay=0.0,
)


class FixtureAdapter(JobBoardAdapter):
    """Adapter for the markup produced by listing_html() / detail_html()."""

    TITLE_SELECTORS = ('.title a', '.title')
    COMPANY_SELECTORS = ('.company',)
    CONDITION_SELECTORS = ('.cond span',)
    DEADLINE_SELECTORS = ('.deadline',)

    def __init__(self, config=FIXTURE_CONFIG):
        super().__init__(config)


def listing_url(page: int) -> str:
    return FIXTURE_CONFIG.listing_url(page)


def detail_url(index: int) -> str:
    return f"https://jobs.test/jobs/{index}"


def listing_html(count: int, start: int = 0) -> str:
    cards = []
    for i in range(start, start + count):
        cards.append(
            f'<li class="job">'
            f'<h2 class="title"><a href="/jobs/{i}">백엔드 개발자 {i}</a></h2>'
            f'<span class="company">(주)테스트컴퍼니{i}</span>'
            f'<div class="cond"><span>서울 강남구</span><span>경력 3년↑</span><span>정규직</span></div>'
            f'</li>'
        )
    return f'<html><body><ul class="jobs">{"".join(cards)}</ul></body></html>'


def detail_html(index: int) -> str:
    return (
        '<html><body><div class="detail">'
        f'<p>주요업무 결제 시스템 API 개발 및 운영 {index}</p>'
        '<p>자격요건 Python 3년 이상, SQL 경험</p>'
        '<p>복지 재택근무, 점심 제공</p>'
        '<p class="deadline">~ 2030.12.31</p>'
        '</div></body></html>'
    )


# ============================================================
# FAKE BROWSER
# ============================================================

class FakeSite:
    """
    Serves canned pages to fake sessions and records every load.

    A page value may be (html, title), an exception instance to raise, or
    a callable taking the load timeout and returning (html, title).
    """

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.loads = []
        self.active = 0
        self.peak_active = 0
        self._lock = threading.Lock()

    def serve(self, url, timeout):
        with self._lock:
            self.loads.append(url)
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            page = self.pages.get(url)
            if page is None:
                raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
            if isinstance(page, Exception):
                raise page
            if callable(page):
                return page(timeout)
            return page
        finally:
            with self._lock:
                self.active -= 1

    def count(self, url) -> int:
        with self._lock:
            return self.loads.count(url)


class FakeSession:
    def __init__(self, site: FakeSite):
        self.site = site
        self.closed = False
        self.url = None
        self.owner_thread = threading.get_ident()
        self.quit_thread = None

    def open(self, url, timeout):
        if self.closed:
            raise SessionError("Target closed")
        self.url = url
        return self.site.serve(url, timeout)

    def current_url(self):
        return self.url

    def navigate_back(self):
        pass

    def quit(self):
        self.closed = True
        self.quit_thread = threading.get_ident()


class FakeSessionFactory:
    def __init__(self, site: FakeSite, fail: bool = False):
        self.site = site
        self.fail = fail
        self.sessions = []
        self._lock = threading.Lock()

    def __call__(self):
        if self.fail:
            raise RuntimeError("chromium executable not found")
        session = FakeSession(self.site)
        with self._lock:
            self.sessions.append(session)
        return session


def slow_page(seconds: float, html: str = '<html></html>', title: str = 'Job'):
    """Page that takes `seconds` to load, ignoring the load timeout."""
    def load(timeout):
        time.sleep(seconds)
        return html, title
    return load


def timing_out_page():
    """Page that never becomes ready: uses the whole load timeout, then fails."""
    def load(timeout):
        time.sleep(timeout)
        raise TimeoutError(f"Timeout {int(timeout * 1000)}ms exceeded")
    return load


class FakeRepository:
    """Thread-safe in-memory stand-in for JobPostingRepository."""

    def __init__(self, existing=()):
        self.active_urls = set(existing)
        self.saved = []
        self.vectors = {}
        self.exists_checks = []
        self._lock = threading.Lock()

    def exists_active_by_url(self, url):
        with self._lock:
            self.exists_checks.append(url)
            return url in self.active_urls

    def save(self, record):
        with self._lock:
            if record.detail_url in self.active_urls:
                return None
            self.active_urls.add(record.detail_url)
            self.saved.append(record)
            return SimpleNamespace(id=len(self.saved))

    def update_vector(self, posting_id, vector_text):
        with self._lock:
            self.vectors[posting_id] = vector_text
            return True


class FakeEmbedder:
    enabled = True

    def __init__(self, vector=None, error=None):
        self.vector = vector or [0.1, 0.2]
        self.error = error
        self.texts = []

    def embed(self, text):
        self.texts.append(text)
        if self.error:
            raise self.error
        return self.vector


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def test_settings():
    """Settings with every pause set to zero."""
    return Settings(
        crawler_max_attempts=3,
        crawler_backoff_seconds=0.0,
        crawler_page_load_timeout=2.0,
        crawler_task_timeout=5.0,
        crawler_min_workers=2,
        crawler_max_workers=4,
        crawler_inter_site_delay=0.0,
        embedding_url=None,
    )


@pytest.fixture
def repository(tmp_path):
    """Repository on a file-backed SQLite database (one connection per thread)."""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'jobs.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    Base.metadata.create_all(bind=file_engine)
    yield JobPostingRepository(sessionmaker(autocommit=False, autoflush=False, bind=file_engine))
    file_engine.dispose()


@pytest.fixture
def fake_site():
    return FakeSite()


@pytest.fixture
def session_factory(fake_site):
    return FakeSessionFactory(fake_site)


@pytest.fixture
def manager(test_settings, repository, session_factory):
    """CrawlManager over the fixture board, fake sessions and the test database."""
    crawl_manager = CrawlManager(
        test_settings,
        repository,
        embedder=None,
        session_factory=session_factory,
        adapters={'fixture': FixtureAdapter()},
        delay_fn=lambda low, high: 0.0,
    )
    yield crawl_manager
    crawl_manager.shutdown()


@pytest.fixture(scope="function")
def client(manager):
    """Create a test client with the crawl manager overridden."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_manager] = lambda: manager

    # Use TestClient directly without context manager for compatibility
    test_client = TestClient(app)
    yield test_client

    if main._crawl_thread is not None:
        main._crawl_thread.join(timeout=10)
        main._crawl_thread = None
    app.dependency_overrides.clear()
