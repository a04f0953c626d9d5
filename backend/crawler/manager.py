"""
Crawl Manager - orchestrates the job-board crawl.

Runs sites one after another: listing pages on the calling thread, then
detail pages on the shared worker pool. Also answers the status queries
and runs the maintenance jobs behind the admin routes.
"""

import random
from dataclasses import asdict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
import logging

from bs4 import BeautifulSoup

from .base import Colors, CrawlSummary, SiteAdapter, SiteCrawlResult, utc_now
from .cancellation import CancelToken
from .crawlers.fetcher import PageFetcher
from .crawlers.session import BrowserSessionPool, playwright_session_factory
from .detail import DetailScheduler, compute_pool_size
from .listing import ListingCrawler
from .persistence import RecordWriter
from .sites import ADAPTERS

logger = logging.getLogger(__name__)


class CrawlManager:
    """
    Sequences sites through the listing loop and detail fan-out.

    Usage:
        manager = CrawlManager(settings, JobPostingRepository(), EmbeddingClient(...))

        # Crawl everything that is enabled
        summary = manager.crawl_all()

        # Crawl a subset
        summary = manager.crawl_sites(['saramin', 'wanted'])

        # Status for the dashboard
        status = manager.get_all_sites_status()

        manager.shutdown()
    """

    def __init__(
        self,
        settings,
        repository,
        embedder=None,
        session_factory: Optional[Callable[[], object]] = None,
        adapters: Optional[Dict[str, SiteAdapter]] = None,
        delay_fn: Callable[[float, float], float] = random.uniform,
    ):
        """
        Initialize the crawl manager.

        Args:
            settings: Application settings (crawler_* knobs)
            repository: JobPostingRepository
            embedder: EmbeddingClient, or None to store postings without vectors
            session_factory: Builds a started browser session (Playwright by default)
            adapters: Site id -> adapter (all registered adapters by default)
            delay_fn: Draws the per-page pause from a (min, max) window

        Raises:
            Exception: The detail worker pool could not be created
        """
        self.settings = settings
        self.repository = repository
        self.adapters: Dict[str, SiteAdapter] = (
            adapters if adapters is not None else {site_id: cls() for site_id, cls in ADAPTERS.items()}
        )

        factory = session_factory or playwright_session_factory(
            headless=settings.crawler_headless,
            block_stylesheets=settings.crawler_block_stylesheets,
        )
        self.pool = BrowserSessionPool(factory)
        self.fetcher = PageFetcher(
            max_attempts=settings.crawler_max_attempts,
            backoff_seconds=settings.crawler_backoff_seconds,
            load_timeout=settings.crawler_page_load_timeout,
        )
        self.writer = RecordWriter(repository, embedder)
        self.listing = ListingCrawler(self.fetcher, self.pool, delay_fn=delay_fn, max_pages=settings.crawler_max_pages)
        self.scheduler = DetailScheduler(
            self.fetcher,
            self.pool,
            self.writer,
            repository.exists_active_by_url,
            pool_size=compute_pool_size(settings.crawler_min_workers, settings.crawler_max_workers),
            task_timeout=settings.crawler_task_timeout,
        )
        self._shutdown = CancelToken()
        self.last_summary: Optional[CrawlSummary] = None

    # ------------------------------------------------------------------
    # Crawling
    # ------------------------------------------------------------------

    def crawl_all(self, cancel: Optional[CancelToken] = None) -> CrawlSummary:
        """Crawl every enabled site."""
        site_ids = [site_id for site_id, adapter in self.adapters.items() if adapter.config.enabled]
        return self.crawl_sites(site_ids, cancel)

    def crawl_sites(self, site_ids: List[str], cancel: Optional[CancelToken] = None) -> CrawlSummary:
        """
        Crawl the given sites in order.

        Unknown ids are logged and skipped. A failing site is recorded with
        zero results and the next one still runs. Never raises.

        Args:
            site_ids: Site ids to crawl
            cancel: Stops the crawl at the next wait or page boundary

        Returns:
            CrawlSummary with per-site counts
        """
        token = self._shutdown.linked(cancel)
        summary = CrawlSummary(started_at=utc_now())
        logger.info(Colors.bold(f"Crawl started for sites: {site_ids}"))

        try:
            crawled_any = False
            for site_id in site_ids:
                if token.cancelled:
                    logger.info("Crawl cancelled, skipping remaining sites")
                    break

                adapter = self.adapters.get(site_id)
                if adapter is None:
                    logger.warning(f"Unsupported site: {site_id}")
                    continue

                # Spread load between boards
                if crawled_any and token.wait(self.settings.crawler_inter_site_delay):
                    logger.info("Crawl cancelled during inter-site delay")
                    break
                crawled_any = True

                summary.sites[site_id] = self.crawl_site(adapter, token)
        except Exception as e:
            logger.error(f"Crawl aborted unexpectedly: {e}")
        finally:
            self.pool.close()

        summary.completed_at = utc_now()
        self.last_summary = summary
        logger.info(Colors.green(summary.message))
        return summary

    def crawl_site(self, adapter: SiteAdapter, cancel: CancelToken) -> SiteCrawlResult:
        """Listing loop then detail fan-out for one site. Never raises."""
        config = adapter.config
        logger.info(f"{config.name}({config.id}) crawl started")
        result = SiteCrawlResult(site_id=config.id, site_name=config.name, started_at=utc_now())

        try:
            try:
                listing = self.listing.crawl(adapter, cancel)
            finally:
                # The listing session is not needed during the detail fan-out
                self.pool.release()

            result.summaries = len(listing.summaries)
            result.pages_fetched = listing.pages_fetched
            result.pages_failed = listing.pages_failed

            detail = self.scheduler.run(adapter, listing.summaries, cancel)
            result.detail_submitted = detail.submitted
            result.detail_skipped_existing = detail.skipped_existing
            result.saved = detail.saved
            result.duplicates = detail.duplicates
            result.failed = detail.failed + detail.invalid
            result.timeouts = detail.timeouts
            result.error_details = [
                {'url': r.url, 'status': r.status, 'reason': r.reason}
                for r in detail.results if r.status in ('failed', 'timeout')
            ]
        except Exception as e:
            logger.error(Colors.red(f"{config.name}({config.id}) crawl failed: {e}"))
            result = SiteCrawlResult(
                site_id=config.id,
                site_name=config.name,
                started_at=result.started_at,
                errors=1,
                error_details=[{'error': str(e)}],
            )

        result.completed_at = utc_now()
        logger.info(
            f"{config.name}({config.id}) crawl finished: {result.summaries} collected, "
            f"{result.saved} saved, {result.detail_skipped_existing} already stored"
        )
        return result

    def shutdown(self):
        """Cancel running crawls and release every browser session."""
        logger.info("Shutting down crawl manager")
        self._shutdown.cancel()
        self.scheduler.shutdown()
        self.pool.close()

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_supported_sites(self) -> Dict[str, str]:
        """Site id -> display name."""
        return {site_id: adapter.config.name for site_id, adapter in self.adapters.items()}

    def get_site_status(self, site_id: str) -> Dict:
        """
        Stored-posting status for one site.

        Returns:
            Dict with total_jobs (active), recent_jobs (last 24h) and
            last_crawled (ISO timestamp or None)
        """
        adapter = self.adapters.get(site_id)
        if adapter is None:
            return {'site_id': site_id, 'error': 'Unsupported site'}

        last = self._last_crawled(site_id)
        return {
            'site_id': site_id,
            'site_name': adapter.config.name,
            'total_jobs': self.repository.count_active_by_site(site_id),
            'recent_jobs': self.repository.count_created_since(site_id, utc_now() - timedelta(hours=24)),
            'last_crawled': last.isoformat() if last else None,
        }

    def get_all_sites_status(self) -> List[Dict]:
        return [self.get_site_status(site_id) for site_id in self.adapters]

    def get_site_statistics(self) -> Dict:
        """Totals per site plus postings added in the last 7 days."""
        week_ago = utc_now() - timedelta(days=7)
        sites = []
        for site_id, adapter in self.adapters.items():
            sites.append({
                'site_id': site_id,
                'site_name': adapter.config.name,
                'total_jobs': self.repository.count_active_by_site(site_id),
                'weekly_jobs': self.repository.count_created_since(site_id, week_ago),
            })
        return {
            'total_jobs': self.repository.count_active(),
            'sites': sites,
        }

    def _last_crawled(self, site_id: str) -> Optional[datetime]:
        try:
            return self.repository.last_created_at(site_id)
        except Exception as e:
            logger.warning(f"Could not read last crawl time for {site_id}: {e}")
            return None

    # ------------------------------------------------------------------
    # Diagnostics and maintenance
    # ------------------------------------------------------------------

    def test_extraction(self, site_id: str, url: Optional[str] = None, limit: int = 5) -> Dict:
        """
        Load one listing page and report what the adapter extracts from it.

        Args:
            site_id: Site id
            url: Listing URL (defaults to the site's first page)
            limit: Number of parsed postings to include

        Raises:
            ValueError: If site_id is unknown
        """
        adapter = self.adapters.get(site_id)
        if adapter is None:
            raise ValueError(f"Unknown site: '{site_id}'")

        url = url or adapter.config.listing_url(1)
        logger.info(f"Extraction test started: {url}")
        try:
            session = self.pool.acquire()
            fetched = self.fetcher.fetch(session, url, cancel=self._shutdown, label=adapter.config.name)
        finally:
            self.pool.release()

        if not fetched.ok:
            logger.error(f"Extraction test page load failed: {url}")
            return {'site_id': site_id, 'url': url, 'loaded': False, 'reason': fetched.reason, 'count': 0, 'jobs': []}

        summaries = adapter.parse_summaries(BeautifulSoup(fetched.html, 'html.parser'))
        logger.info(f"Extraction test result: {len(summaries)} postings")
        for i, summary in enumerate(summaries[:limit], 1):
            logger.info(f"Posting {i}: {summary.company} - {summary.title} ({summary.detail_url})")
        return {
            'site_id': site_id,
            'url': url,
            'loaded': True,
            'count': len(summaries),
            'jobs': [asdict(s) for s in summaries[:limit]],
        }

    def cleanup_old_jobs(self, days: int = 30) -> int:
        """Delete postings created more than `days` ago."""
        try:
            deleted = self.repository.delete_created_before(utc_now() - timedelta(days=days))
            logger.info(f"Deleted {deleted} postings older than {days} days")
            return deleted
        except Exception as e:
            logger.error(f"Old posting cleanup failed: {e}")
            return 0

    def deactivate_expired_jobs(self) -> int:
        """Deactivate postings whose deadline has passed."""
        try:
            updated = self.repository.deactivate_expired()
            logger.info(f"Deactivated {updated} expired postings")
            return updated
        except Exception as e:
            logger.error(f"Expired posting deactivation failed: {e}")
            return 0
