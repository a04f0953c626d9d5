"""
Data normalization utilities for crawlers.

These functions standardize scraped text into consistent formats.
"""

import re
from datetime import datetime
from typing import Optional


def clean_text(text: Optional[str]) -> Optional[str]:
    """
    Collapse runs of whitespace and trim.

    Examples:
        "  백엔드\\n  개발자 " -> "백엔드 개발자"
        "   " -> None
    """
    if text is None:
        return None
    text = re.sub(r'\s+', ' ', text.replace('\xa0', ' ')).strip()
    return text or None


def normalize_company(name: Optional[str]) -> Optional[str]:
    """
    Strip legal-form markers that boards add around company names.

    Examples:
        "(주)카카오" -> "카카오"
        "네이버 주식회사" -> "네이버"
        "㈜토스" -> "토스"
    """
    name = clean_text(name)
    if not name:
        return None
    name = re.sub(r'^\s*(\(주\)|㈜|주식회사)\s*', '', name)
    name = re.sub(r'\s*(\(주\)|㈜|주식회사)\s*$', '', name)
    return name.strip() or None


def parse_deadline(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parse an application deadline.

    Handles:
        "~ 2024.12.31" / "~12.31(화)"
        "2024-12-31"
        "12/31"  (current year, or next year if the date already passed)

    Returns:
        datetime at midnight, or None when absent or unparseable
    """
    if not text:
        return None
    now = now or datetime.now()

    match = re.search(r'(\d{4})[.\-/](\d{1,2})[.\-/](\d{1,2})', text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    match = re.search(r'~\s*(\d{1,2})[./](\d{1,2})', text) or re.search(r'\b(\d{1,2})/(\d{1,2})\b', text)
    if match:
        month, day = int(match.group(1)), int(match.group(2))
        deadline = _safe_date(now.year, month, day)
        if deadline and deadline.date() < now.date():
            deadline = _safe_date(now.year + 1, month, day)
        return deadline

    return None


def _safe_date(year: int, month: int, day: int) -> Optional[datetime]:
    try:
        return datetime(year, month, day)
    except ValueError:
        return None
