"""Browser sessions and the page fetch state machine."""

from .session import BrowserSessionPool, PlaywrightSession, playwright_session_factory
from .fetcher import PageFetcher, is_blocked_page

__all__ = [
    'BrowserSessionPool',
    'PlaywrightSession',
    'playwright_session_factory',
    'PageFetcher',
    'is_blocked_page',
]
