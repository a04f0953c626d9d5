"""Shared utilities for crawlers."""

from .normalizers import (
    clean_text,
    normalize_company,
    parse_deadline,
)
from .extractors import (
    text_of,
    first_text,
    first_link,
    classify_conditions,
    condition_chips,
    extract_section,
    extract_salary,
    extract_deadline_text,
)

__all__ = [
    'clean_text',
    'normalize_company',
    'parse_deadline',
    'text_of',
    'first_text',
    'first_link',
    'classify_conditions',
    'condition_chips',
    'extract_section',
    'extract_salary',
    'extract_deadline_text',
]
