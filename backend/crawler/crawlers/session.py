"""
Browser sessions for sites with bot detection.

Uses the Playwright sync API with stealth settings: automation flags off,
a randomized user agent, realistic headers, and heavy resources (images,
media, fonts) blocked to keep page loads cheap.

Sync Playwright objects belong to the thread that created them, so every
worker thread gets its own session through BrowserSessionPool and no
session is ever touched by another thread.
"""

import random
import threading
import time
from typing import Callable, Dict, Optional, Tuple
import logging

from playwright.sync_api import sync_playwright, Error as PlaywrightError

from ..base import SessionError

logger = logging.getLogger(__name__)


USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
]

LAUNCH_ARGS = [
    '--disable-blink-features=AutomationControlled',
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-gpu',
    '--disable-extensions',
    '--window-size=1920,1080',
]

# Errors whose text means the browser itself is gone, not just this page
SESSION_GONE_MARKERS = ('target closed', 'browser has been closed', 'connection closed', 'context closed')

HIDE_AUTOMATION_SCRIPT = """
    Object.defineProperty(navigator, 'webdriver', {
        get: () => undefined
    });
    Object.defineProperty(navigator, 'languages', {
        get: () => ['ko-KR', 'ko', 'en-US', 'en']
    });
"""


class PlaywrightSession:
    """
    One headless Chromium instance with a single reusable page.

    Features:
    - Anti-automation launch flags and an init script hiding navigator.webdriver
    - Randomized user agent per session
    - Images, media and fonts aborted at the network layer
    - Navigation followed by a document.readyState poll
    """

    BLOCKED_RESOURCES = {'image', 'media', 'font'}

    def __init__(
        self,
        headless: bool = True,
        block_stylesheets: bool = False,
        user_agent: Optional[str] = None,
    ):
        """
        Initialize the session (the browser starts in start()).

        Args:
            headless: Run browser in headless mode
            block_stylesheets: Also abort CSS; left off to keep page structure intact
            user_agent: Fixed user agent, otherwise one is picked at random
        """
        self.headless = headless
        self.block_stylesheets = block_stylesheets
        self.user_agent = user_agent or random.choice(USER_AGENTS)
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def start(self) -> 'PlaywrightSession':
        """Launch the browser. Raises SessionError if anything fails."""
        try:
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(headless=self.headless, args=LAUNCH_ARGS)
            self._context = self._browser.new_context(
                viewport={'width': 1920, 'height': 1080},
                user_agent=self.user_agent,
                locale='ko-KR',
                timezone_id='Asia/Seoul',
                ignore_https_errors=True,
                extra_http_headers={
                    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
                    'Accept-Language': 'ko-KR,ko;q=0.9,en-US;q=0.8,en;q=0.7',
                    'Upgrade-Insecure-Requests': '1',
                },
            )
            self._context.add_init_script(HIDE_AUTOMATION_SCRIPT)
            self._context.route('**/*', self._route)
            self._page = self._context.new_page()
        except Exception as e:
            logger.error(f"Failed to start browser session: {e}")
            self.quit()
            raise SessionError(f"Browser session could not be created: {e}") from e

        logger.debug(f"Browser session started (UA: {self.user_agent[:40]}...)")
        return self

    def _route(self, route):
        blocked = set(self.BLOCKED_RESOURCES)
        if self.block_stylesheets:
            blocked.add('stylesheet')
        if route.request.resource_type in blocked:
            route.abort()
        else:
            route.continue_()

    def open(self, url: str, timeout: float) -> Tuple[str, str]:
        """
        Navigate to a URL and wait for the document to be ready.

        Args:
            url: Target URL
            timeout: Seconds allowed for navigation plus readiness

        Returns:
            (page source, page title)

        Raises:
            SessionError: The browser is gone
            Exception: Navigation failure or timeout (retryable)
        """
        if self._page is None:
            raise SessionError("Session is not started")

        started = time.monotonic()
        try:
            self._page.goto(url, wait_until='domcontentloaded', timeout=int(timeout * 1000))
            remaining = max(timeout - (time.monotonic() - started), 0.1)
            self._page.wait_for_function(
                "document.readyState === 'complete'",
                timeout=int(remaining * 1000),
                polling=250,
            )
            return self._page.content(), self._page.title()
        except PlaywrightError as e:
            message = str(e).lower()
            if any(marker in message for marker in SESSION_GONE_MARKERS):
                raise SessionError(str(e)) from e
            raise

    def current_url(self) -> Optional[str]:
        return self._page.url if self._page is not None else None

    def navigate_back(self):
        if self._page is not None:
            self._page.go_back(wait_until='domcontentloaded')

    def quit(self):
        """Close everything. Safe to call more than once."""
        for name in ('_page', '_context', '_browser'):
            resource = getattr(self, name)
            if resource is not None:
                try:
                    resource.close()
                except Exception as e:
                    logger.debug(f"Error closing {name.strip('_')}: {e}")
                setattr(self, name, None)

        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
            self._playwright = None


def playwright_session_factory(headless: bool = True, block_stylesheets: bool = False) -> Callable[[], PlaywrightSession]:
    """Factory that builds and starts a PlaywrightSession on the calling thread."""
    def create() -> PlaywrightSession:
        return PlaywrightSession(headless=headless, block_stylesheets=block_stylesheets).start()
    return create


class BrowserSessionPool:
    """
    Worker-local browser sessions.

    The pool owns an explicit table of thread id -> (owner thread, session).
    A thread only ever sees its own entry: acquire() lazily creates it,
    release() quits and forgets it. The table itself is shared and guarded
    by a lock. A session is only ever quit by its owner, or after its owner
    has exited.

    Usage:
        pool = BrowserSessionPool(playwright_session_factory())
        session = pool.acquire()
        try:
            html, title = session.open(url, timeout=15)
        finally:
            pool.release()
    """

    def __init__(self, session_factory: Callable[[], object]):
        self._factory = session_factory
        self._sessions: Dict[int, Tuple[threading.Thread, object]] = {}
        self._lock = threading.Lock()
        self._created = 0
        self._peak = 0

    def acquire(self):
        """
        Return the calling thread's session, creating it on first use.

        Raises:
            SessionError: The session could not be created
        """
        key = threading.get_ident()
        owner = threading.current_thread()
        stale = None
        with self._lock:
            entry = self._sessions.get(key)
            if entry is not None:
                if entry[0] is owner:
                    return entry[1]
                # Thread id reused after the previous owner exited
                stale = self._sessions.pop(key)[1]
        if stale is not None:
            self._quit(stale)

        try:
            session = self._factory()
        except SessionError:
            raise
        except Exception as e:
            raise SessionError(f"Browser session could not be created: {e}") from e

        with self._lock:
            self._sessions[key] = (owner, session)
            self._created += 1
            self._peak = max(self._peak, len(self._sessions))
        logger.debug(f"Session created for thread {owner.name}")
        return session

    def release(self):
        """Quit and forget the calling thread's session. No-op if it has none."""
        with self._lock:
            entry = self._sessions.pop(threading.get_ident(), None)
        if entry is not None:
            self._quit(entry[1])

    def discard(self, reason: str = "fault"):
        """Drop the calling thread's session after a fault so the next task starts fresh."""
        logger.info(f"Discarding browser session on {threading.current_thread().name}: {reason}")
        self.release()

    def has_session(self) -> bool:
        with self._lock:
            return threading.get_ident() in self._sessions

    def active_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    @property
    def created_count(self) -> int:
        return self._created

    @property
    def peak_count(self) -> int:
        return self._peak

    def close(self):
        """
        Release the calling thread's session and those of exited threads.

        Sessions owned by threads that are still running (an abandoned
        detail worker stuck in a page load, a concurrent extraction test)
        are left in place; their owner releases them when it finishes.
        """
        current = threading.current_thread()
        with self._lock:
            orphaned = [
                key for key, (owner, _) in self._sessions.items()
                if owner is current or not owner.is_alive()
            ]
            sessions = [self._sessions.pop(key)[1] for key in orphaned]
            still_owned = len(self._sessions)
        for session in sessions:
            self._quit(session)
        if sessions:
            logger.info(f"Closed {len(sessions)} leftover browser session(s)")
        if still_owned:
            logger.info(f"{still_owned} browser session(s) still in use, left to their owner threads")

    @staticmethod
    def _quit(session):
        try:
            session.quit()
        except Exception as e:
            logger.warning(f"Error closing browser session: {e}")
