"""
Data extraction utilities for crawlers.

These functions pull text and job conditions out of parsed HTML elements.
"""

import re
from typing import Optional, List, Dict, Sequence

from bs4 import Tag

from .normalizers import clean_text


# Keywords used to classify condition chips ("서울 강남구", "경력 3년↑", "정규직")
EXPERIENCE_KEYWORDS = ('신입', '경력', '년↑', '년 이상', '무관')
EMPLOYMENT_KEYWORDS = ('정규직', '계약직', '인턴', '파견직', '프리랜서', '아르바이트')
SALARY_KEYWORDS = ('만원', '연봉', '급여', '회사내규', '면접 후')
LOCATION_KEYWORDS = (
    '서울', '경기', '인천', '부산', '대구', '대전', '광주', '울산', '세종',
    '강원', '충북', '충남', '전북', '전남', '경북', '경남', '제주', '전국', '원격',
)

# Headings that start a section inside a detail page
SECTION_HEADINGS = {
    'requirements': ('자격요건', '자격 요건', '지원자격', '필수 요건', 'requirements', 'qualifications'),
    'benefits': ('복지', '혜택', '복리후생', 'benefits', 'perks'),
}


def text_of(element: Optional[Tag]) -> Optional[str]:
    """Whitespace-normalized text of an element, or None."""
    if element is None:
        return None
    return clean_text(element.get_text(' ', strip=True))


def first_text(parent: Tag, selectors: Sequence[str]) -> Optional[str]:
    """Text of the first selector that matches an element with non-empty text."""
    for selector in selectors:
        value = text_of(parent.select_one(selector))
        if value:
            return value
    return None


def first_link(parent: Tag, selectors: Sequence[str]) -> Optional[Tag]:
    """First matching element carrying an href (the element itself or its enclosing <a>)."""
    for selector in selectors:
        element = parent.select_one(selector)
        if element is None:
            continue
        if element.get('href'):
            return element
        anchor = element.find_parent('a') or element.find('a', href=True)
        if anchor is not None and anchor.get('href'):
            return anchor
    return None


def classify_conditions(chips: Sequence[str]) -> Dict[str, Optional[str]]:
    """
    Sort free-form condition chips into job condition fields.

    Args:
        chips: Short texts like "서울 강남구", "경력 3년↑", "정규직"

    Returns:
        Dict with location, experience_level, employment_type, salary
    """
    result = {'location': None, 'experience_level': None, 'employment_type': None, 'salary': None}
    for chip in chips:
        chip = clean_text(chip)
        if not chip:
            continue
        if result['salary'] is None and any(k in chip for k in SALARY_KEYWORDS):
            result['salary'] = chip
        elif result['employment_type'] is None and any(k in chip for k in EMPLOYMENT_KEYWORDS):
            result['employment_type'] = chip
        elif result['experience_level'] is None and any(k in chip for k in EXPERIENCE_KEYWORDS):
            result['experience_level'] = chip
        elif result['location'] is None and any(chip.startswith(k) for k in LOCATION_KEYWORDS):
            result['location'] = chip
    return result


def condition_chips(parent: Tag, selectors: Sequence[str]) -> List[str]:
    """Texts of every element matched by the first selector that matches anything."""
    for selector in selectors:
        elements = parent.select(selector)
        if elements:
            return [t for t in (text_of(e) for e in elements) if t]
    return []


def extract_section(text: Optional[str], key: str, max_length: int = 2000) -> Optional[str]:
    """
    Cut a titled section (requirements, benefits) out of detail text.

    The section runs from its heading to the next known heading or the end.

    Examples:
        extract_section("주요업무 API 개발 자격요건 Python 3년 복지 재택", 'requirements')
            -> "Python 3년"
    """
    if not text:
        return None
    headings = SECTION_HEADINGS[key]
    lowered = text.lower()
    start = -1
    for heading in headings:
        pos = lowered.find(heading.lower())
        if pos != -1 and (start == -1 or pos < start):
            start = pos + len(heading)
    if start == -1:
        return None

    end = len(text)
    all_headings = [h for hs in SECTION_HEADINGS.values() for h in hs] + ['주요업무', '우대사항', '채용절차']
    for heading in all_headings:
        pos = lowered.find(heading.lower(), start)
        if pos != -1 and pos < end:
            end = pos

    section = clean_text(text[start:end].lstrip(' :·-'))
    if not section:
        return None
    return section[:max_length]


def extract_salary(text: Optional[str]) -> Optional[str]:
    """
    Find a salary expression in free text.

    Examples:
        "연봉 4,000~6,000만원 협의" -> "연봉 4,000~6,000만원"
        "급여 회사내규에 따름" -> "회사내규에 따름"
    """
    if not text:
        return None
    match = re.search(r'(연봉\s*[\d,]+\s*(?:~\s*[\d,]+\s*)?만원)', text)
    if match:
        return clean_text(match.group(1))
    match = re.search(r'([\d,]+\s*(?:~\s*[\d,]+\s*)?만원)', text)
    if match:
        return clean_text(match.group(1))
    match = re.search(r'(회사내규에\s*따름|면접\s*후\s*결정)', text)
    if match:
        return clean_text(match.group(1))
    return None


def extract_deadline_text(text: Optional[str]) -> Optional[str]:
    """Find the raw deadline expression ("~ 2024.12.31", "2024-12-31", "12/31")."""
    if not text:
        return None
    for pattern in (r'~\s*\d{4}\.\d{1,2}\.\d{1,2}', r'\d{4}-\d{1,2}-\d{1,2}', r'~\s*\d{1,2}\.\d{1,2}', r'\b\d{1,2}/\d{1,2}\b'):
        match = re.search(pattern, text)
        if match:
            return match.group(0)
    return None
