"""
Job-board crawler for the job posting service.

This package provides:
- Site adapters for Saramin, JobKorea, Wanted, Programmers and Jumpit
- Worker-local Playwright sessions with bot-block aware page fetching
- A sequential listing loop and a bounded detail fan-out
- CrawlManager, which runs sites in order and reports per-site counts
"""

from .base import SiteAdapter, SiteConfig, JobSummary, JobRecord, CrawlSummary, SiteCrawlResult
from .config import SITES, get_site_config, get_enabled_sites
from .cancellation import CancelToken
from .manager import CrawlManager

__all__ = [
    'SiteAdapter',
    'SiteConfig',
    'JobSummary',
    'JobRecord',
    'CrawlSummary',
    'SiteCrawlResult',
    'SITES',
    'get_site_config',
    'get_enabled_sites',
    'CancelToken',
    'CrawlManager',
]
