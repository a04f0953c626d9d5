"""
Base classes for the job-board crawler.

This module defines the data structures passed between the crawl stages
and the abstract adapter every job-board implementation subclasses.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Optional, Any, Tuple
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from datetime import datetime, timezone
from urllib.parse import urljoin
import logging

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for colorized logging."""
    RESET = '\033[0m'
    BOLD = '\033[1m'

    # Colors
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GRAY = '\033[90m'

    @staticmethod
    def green(text):
        return f"{Colors.GREEN}{text}{Colors.RESET}"

    @staticmethod
    def yellow(text):
        return f"{Colors.YELLOW}{text}{Colors.RESET}"

    @staticmethod
    def red(text):
        return f"{Colors.RED}{text}{Colors.RESET}"

    @staticmethod
    def blue(text):
        return f"{Colors.BLUE}{text}{Colors.RESET}"

    @staticmethod
    def cyan(text):
        return f"{Colors.CYAN}{text}{Colors.RESET}"

    @staticmethod
    def gray(text):
        return f"{Colors.GRAY}{text}{Colors.RESET}"

    @staticmethod
    def bold(text):
        return f"{Colors.BOLD}{text}{Colors.RESET}"


class SessionError(Exception):
    """A browser session is unusable (could not start, or the browser went away)."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SiteConfig:
    """Configuration for a job board."""
    id: str                             # Registry key (e.g., 'saramin')
    name: str                           # Display name
    url_template: str                   # Listing URL with a {page} placeholder
    base_url: str                       # Base URL for resolving relative detail links
    listing_selectors: Tuple[str, ...]  # Listing card selectors, first match wins
    detail_selectors: Tuple[str, ...]   # Detail body selectors, first match wins
    max_pages: int = 3
    min_delay: float = 1.0              # Seconds, lower bound of the per-page pause
    max_delay: float = 2.0
    job_category: str = "개발"
    enabled: bool = True

    def listing_url(self, page: int) -> str:
        return self.url_template.format(page=page)


@dataclass
class JobSummary:
    """A posting as seen on a listing page."""
    title: str
    company: str
    detail_url: Optional[str]
    source_site: str
    location: Optional[str] = None
    salary: Optional[str] = None
    employment_type: Optional[str] = None
    experience_level: Optional[str] = None
    job_category: Optional[str] = None


@dataclass
class JobRecord:
    """A posting enriched with its detail page, ready for persistence."""
    title: str
    company: str
    detail_url: Optional[str]
    source_site: str
    location: Optional[str] = None
    salary: Optional[str] = None
    employment_type: Optional[str] = None
    experience_level: Optional[str] = None
    job_category: Optional[str] = None

    # Detail page fields
    description: Optional[str] = None
    requirements: Optional[str] = None
    benefits: Optional[str] = None
    deadline: Optional[datetime] = None

    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    embedding: Optional[List[float]] = None

    @classmethod
    def from_summary(cls, summary: JobSummary, **detail: Any) -> 'JobRecord':
        """
        Merge listing fields with detail fields.

        Detail values override listing values only when they are non-empty,
        so a refined salary or location replaces the listing one but a missing
        detail field never erases what the listing page had.
        """
        values = {f.name: getattr(summary, f.name) for f in fields(summary)}
        known = {f.name for f in fields(cls)}
        for key, value in detail.items():
            if key in known and value not in (None, ""):
                values[key] = value
        return cls(**values)

    def embedding_text(self) -> str:
        parts = [
            self.title, self.company, self.description, self.requirements,
            self.location, self.job_category, self.employment_type, self.experience_level,
        ]
        return " ".join(p.strip() for p in parts if p and p.strip())

    def is_valid(self) -> bool:
        return bool(self.title and self.title.strip() and self.company and self.company.strip())

    def cleaned(self) -> 'JobRecord':
        """Copy with surrounding whitespace trimmed from every text field."""
        changes = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, str):
                changes[f.name] = value.strip()
        return replace(self, **changes)


@dataclass
class CrawlTask:
    """One detail page to enrich. Consumed exactly once."""
    summary: JobSummary
    site_id: str


class FetchState(Enum):
    """States of a single page fetch."""
    PENDING = "pending"
    LOADING = "loading"
    LOADED = "loaded"
    BLOCKED = "blocked"
    FAILED = "failed"


class Outcome(Enum):
    """Why a unit of work ended the way it did."""
    SUCCESS = "success"
    SKIPPED = "skipped"       # Nothing to do (already known, cancelled, no data)
    RETRYABLE = "retryable"   # Transient: network fault, timeout, block page
    FATAL = "fatal"           # Session unusable; do not retry on it


@dataclass
class FetchResult:
    """Terminal result of the page fetch state machine."""
    url: str
    state: FetchState
    outcome: Outcome
    html: Optional[str] = None
    title: Optional[str] = None
    attempts: int = 0
    reason: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state == FetchState.LOADED


@dataclass
class TaskResult:
    """Result of one detail task."""
    url: str
    status: str  # saved, duplicate, invalid, failed, timeout, cancelled
    reason: Optional[str] = None


@dataclass
class SiteCrawlResult:
    """Result of crawling one site."""
    site_id: str
    site_name: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    summaries: int = 0
    pages_fetched: int = 0
    pages_failed: int = 0
    detail_submitted: int = 0
    detail_skipped_existing: int = 0
    saved: int = 0
    duplicates: int = 0
    failed: int = 0
    timeouts: int = 0
    errors: int = 0
    error_details: List[Dict] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.errors == 0

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at and self.started_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> Dict:
        return {
            'site_id': self.site_id,
            'site_name': self.site_name,
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'duration_seconds': self.duration_seconds,
            'summaries': self.summaries,
            'pages_fetched': self.pages_fetched,
            'pages_failed': self.pages_failed,
            'detail_submitted': self.detail_submitted,
            'detail_skipped_existing': self.detail_skipped_existing,
            'saved': self.saved,
            'duplicates': self.duplicates,
            'failed': self.failed,
            'timeouts': self.timeouts,
            'errors': self.errors,
            'error_details': self.error_details[:10],  # Limit error details
            'success': self.success,
        }


@dataclass
class CrawlSummary:
    """Aggregate over a batch of sites."""
    started_at: datetime
    completed_at: Optional[datetime] = None
    sites: Dict[str, SiteCrawlResult] = field(default_factory=dict)

    @property
    def counts(self) -> Dict[str, int]:
        return {r.site_name: r.summaries for r in self.sites.values()}

    @property
    def total(self) -> int:
        return sum(r.summaries for r in self.sites.values())

    @property
    def saved(self) -> int:
        return sum(r.saved for r in self.sites.values())

    @property
    def message(self) -> str:
        return f"Crawl finished: {self.total} postings collected. Per site: {self.counts}"

    def to_dict(self) -> Dict:
        return {
            'started_at': self.started_at.isoformat(),
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'total': self.total,
            'saved': self.saved,
            'counts': self.counts,
            'message': self.message,
            'sites': {k: v.to_dict() for k, v in self.sites.items()},
        }


class SiteAdapter(ABC):
    """
    Abstract base class for all job-board adapters.

    An adapter knows one board's markup: where the listing cards are, how
    to read a card into a JobSummary, and where the posting body lives on a
    detail page. It never fetches anything itself; pages are handed to it as
    parsed BeautifulSoup documents.

    Subclasses must implement:
    - parse_summary(): Read one listing card
    - parse_detail(): Read detail fields from the detail container or page
    """

    def __init__(self, config: SiteConfig):
        self.config = config
        self.logger = logging.getLogger(f"crawler.{config.id}")

    @property
    def site_id(self) -> str:
        return self.config.id

    def locate_listing_elements(self, page: BeautifulSoup) -> List[Tag]:
        """
        Find listing cards using the first selector that matches anything.

        Args:
            page: Parsed listing page

        Returns:
            Matching elements in document order, or an empty list
        """
        for selector in self.config.listing_selectors:
            elements = page.select(selector)
            if elements:
                self.logger.debug(f"Selector '{selector}' matched {len(elements)} elements")
                return elements

        self.logger.debug("No listing selector matched")
        return []

    @abstractmethod
    def parse_summary(self, element: Tag) -> Optional[JobSummary]:
        """
        Parse one listing card.

        Returns:
            JobSummary, or None when title or company is missing
        """
        pass

    def locate_detail_container(self, page: BeautifulSoup) -> Optional[Tag]:
        """Return the first element matching a detail selector, tried in order."""
        for selector in self.config.detail_selectors:
            element = page.select_one(selector)
            if element is not None:
                return element

        self.logger.debug("No detail selector matched")
        return None

    @abstractmethod
    def parse_detail(self, element: Any) -> Dict[str, Any]:
        """
        Parse detail fields from the detail container (or the whole page).

        Returns:
            Partial JobRecord fields; absent fields are simply left out
        """
        pass

    def parse_summaries(self, page: BeautifulSoup) -> List[JobSummary]:
        """Locate and parse every listing card, skipping cards that fail to parse."""
        summaries = []
        for element in self.locate_listing_elements(page):
            try:
                summary = self.parse_summary(element)
            except Exception as e:
                self.logger.debug(f"Skipping listing element: {e}")
                continue
            if summary is not None:
                summaries.append(summary)
        return summaries

    def resolve_url(self, href: Optional[str]) -> Optional[str]:
        """Resolve a possibly relative link against the site's base URL."""
        if not href:
            return None
        href = href.strip()
        if not href or href.startswith(('javascript:', '#')):
            return None
        return urljoin(self.config.base_url, href)
