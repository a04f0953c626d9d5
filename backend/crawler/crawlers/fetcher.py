"""
Page fetching with bot-block detection and linear retry backoff.

A fetch moves PENDING -> LOADING -> LOADED | BLOCKED | FAILED. BLOCKED and
FAILED loop back to LOADING until the attempt ceiling is reached; the
terminal result is returned as a FetchResult, never raised.
"""

import time
from typing import Optional
import logging

from ..base import FetchResult, FetchState, Outcome, SessionError
from ..cancellation import CancelToken

logger = logging.getLogger(__name__)


# Case-insensitive substrings that mark an anti-automation page
BLOCK_MARKERS = (
    'robot',
    'captcha',
    '차단',          # "blocked"
    '접근이 제한',    # "access is restricted"
)
BLOCK_TITLE_MARKERS = ('error', 'blocked')


def is_blocked_page(html: Optional[str], title: Optional[str]) -> bool:
    """
    Classify a loaded page as a bot-block / challenge page.

    Examples:
        is_blocked_page("<div class='g-recaptcha'>", "Jobs") -> True
        is_blocked_page("<ul class='jobs'>...</ul>", "500 Error") -> True
        is_blocked_page("<ul class='jobs'>...</ul>", "Jobs") -> False
    """
    source = (html or '').lower()
    if any(marker in source for marker in BLOCK_MARKERS):
        return True
    page_title = (title or '').lower()
    return any(marker in page_title for marker in BLOCK_TITLE_MARKERS)


def classify(html: Optional[str], title: Optional[str]) -> FetchState:
    return FetchState.BLOCKED if is_blocked_page(html, title) else FetchState.LOADED


class PageFetcher:
    """
    Runs the fetch state machine against a browser session.

    The fetcher holds no session itself; the caller passes the session it
    owns, so one fetcher is shared by every worker thread.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0,
        load_timeout: float = 15.0,
    ):
        """
        Args:
            max_attempts: Page loads per URL before the fetch is a terminal failure
            backoff_seconds: Wait before attempt n+1 is backoff_seconds * n
            load_timeout: Seconds allowed for one navigation plus readiness wait
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.load_timeout = load_timeout

    def fetch(
        self,
        session,
        url: str,
        cancel: Optional[CancelToken] = None,
        deadline: Optional[float] = None,
        label: str = "",
    ) -> FetchResult:
        """
        Load a URL, retrying blocked or failed loads.

        Args:
            session: Browser session owned by the calling thread
            url: URL to load
            cancel: Stops further attempts and wakes the backoff wait
            deadline: time.monotonic() value after which no attempt starts
            label: Site name for log lines

        Returns:
            FetchResult with html and title when state is LOADED
        """
        cancel = cancel or CancelToken()
        prefix = f"{label} " if label else ""
        state = FetchState.PENDING
        attempts = 0
        last_error = None

        while attempts < self.max_attempts:
            if cancel.cancelled:
                return self._result(url, FetchState.FAILED, Outcome.SKIPPED, attempts, reason='cancelled')

            timeout = self.load_timeout
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return self._result(url, FetchState.FAILED, Outcome.RETRYABLE, attempts,
                                        reason='timeout', error=last_error)
                timeout = min(timeout, remaining)

            attempts += 1
            state = FetchState.LOADING
            logger.debug(f"{prefix}load attempt {attempts}/{self.max_attempts}: {url}")

            try:
                html, title = session.open(url, timeout=timeout)
            except SessionError as e:
                logger.warning(f"{prefix}session fault while loading {url}: {e}")
                return self._result(url, FetchState.FAILED, Outcome.FATAL, attempts,
                                    reason='session', error=str(e))
            except Exception as e:
                last_error = str(e)
                state = FetchState.FAILED
                logger.warning(f"{prefix}page load failed (attempt {attempts}/{self.max_attempts}): {url} - {e}")
            else:
                state = classify(html, title)
                if state == FetchState.LOADED:
                    final_url = session.current_url()
                    if final_url and final_url != url:
                        logger.debug(f"{prefix}page loaded via redirect: {url} -> {final_url}")
                    else:
                        logger.debug(f"{prefix}page loaded: {url}")
                    return FetchResult(url=url, state=state, outcome=Outcome.SUCCESS,
                                       html=html, title=title, attempts=attempts)
                last_error = f"blocked page (title: {title!r})"
                logger.warning(f"{prefix}bot block page detected: {url}")

            if attempts < self.max_attempts:
                if cancel.wait(self.backoff_seconds * attempts):
                    return self._result(url, state, Outcome.SKIPPED, attempts, reason='cancelled', error=last_error)

        logger.error(f"{prefix}all {attempts} load attempts failed: {url}")
        reason = 'blocked' if state == FetchState.BLOCKED else 'failed'
        return self._result(url, state, Outcome.RETRYABLE, attempts, reason=reason, error=last_error)

    @staticmethod
    def _result(url, state, outcome, attempts, reason=None, error=None) -> FetchResult:
        return FetchResult(url=url, state=state, outcome=outcome, attempts=attempts, reason=reason, error=error)
