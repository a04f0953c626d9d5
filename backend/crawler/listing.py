"""
Listing crawl loop.

Walks one site's listing pages strictly in order on the calling thread,
stopping at the page cap or at the first page that yields no postings.
"""

import random
from dataclasses import dataclass, field
from typing import Callable, List, Optional
import logging

from bs4 import BeautifulSoup

from .base import Colors, JobSummary, Outcome, SessionError, SiteAdapter
from .cancellation import CancelToken
from .crawlers.fetcher import PageFetcher
from .crawlers.session import BrowserSessionPool

logger = logging.getLogger(__name__)


@dataclass
class ListingResult:
    """Postings collected from one site's listing pages."""
    summaries: List[JobSummary] = field(default_factory=list)
    pages_fetched: int = 0
    pages_failed: int = 0
    cancelled: bool = False


class ListingCrawler:
    """
    Drives a SiteAdapter across successive listing pages.

    The session used for listing pages belongs to the calling thread and is
    taken from the same pool as the detail workers; the caller releases it.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        pool: BrowserSessionPool,
        delay_fn: Callable[[float, float], float] = random.uniform,
        max_pages: Optional[int] = None,
    ):
        """
        Args:
            fetcher: Page fetch state machine
            pool: Session pool; the calling thread's session is used
            delay_fn: Draws the per-page pause from (min_delay, max_delay)
            max_pages: Overrides every site's page cap when set
        """
        self.fetcher = fetcher
        self.pool = pool
        self.delay_fn = delay_fn
        self.max_pages = max_pages

    def crawl(self, adapter: SiteAdapter, cancel: Optional[CancelToken] = None) -> ListingResult:
        """
        Collect summaries from pages 1..page cap.

        Returns:
            ListingResult with summaries in encounter order
        """
        cancel = cancel or CancelToken()
        config = adapter.config
        page_cap = self.max_pages or config.max_pages
        result = ListingResult()

        for page in range(1, page_cap + 1):
            if cancel.cancelled:
                result.cancelled = True
                break

            url = config.listing_url(page)
            logger.info(f"{config.name}({config.id}) page {page} crawl started: {url}")

            try:
                session = self.pool.acquire()
            except SessionError as e:
                result.pages_failed += 1
                logger.error(f"{config.name}({config.id}) page {page} skipped, no browser session: {e}")
                continue

            fetched = self.fetcher.fetch(session, url, cancel=cancel, label=config.name)
            result.pages_fetched += 1

            if fetched.outcome == Outcome.FATAL:
                self.pool.discard(fetched.error or 'session fault')
            if not fetched.ok:
                if fetched.outcome == Outcome.SKIPPED:
                    result.cancelled = True
                    break
                result.pages_failed += 1
                logger.warning(f"{config.name}({config.id}) page {page} load failed, skipping")
                continue

            page_summaries = adapter.parse_summaries(BeautifulSoup(fetched.html, 'html.parser'))
            logger.info(f"{config.name}({config.id}) page {page}: {len(page_summaries)} postings")

            if not page_summaries:
                logger.warning(f"{config.name}({config.id}) no postings on page {page}, stopping")
                break
            result.summaries.extend(page_summaries)

            if page < page_cap and cancel.wait(self.delay_fn(config.min_delay, config.max_delay)):
                result.cancelled = True
                break

        logger.info(Colors.cyan(
            f"{config.name}({config.id}) listing done: {len(result.summaries)} postings "
            f"from {result.pages_fetched} page(s)"
        ))
        return result
