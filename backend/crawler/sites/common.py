"""
Selector-driven adapter shared by the job boards.

Boards differ only in where things sit in the markup, so each site module
declares ordered selector tuples and overrides a hook where its markup
needs special handling.
"""

from typing import Any, Dict, Optional, Tuple

from bs4 import Tag

from ..base import SiteAdapter, JobSummary
from ..config import get_site_config
from ..utils.normalizers import clean_text, normalize_company, parse_deadline
from ..utils.extractors import (
    text_of,
    first_text,
    first_link,
    classify_conditions,
    condition_chips,
    extract_section,
    extract_salary,
    extract_deadline_text,
)

# Shorter bodies are navigation chrome, not a posting
MIN_DESCRIPTION_LENGTH = 20
MAX_DESCRIPTION_LENGTH = 10000


class JobBoardAdapter(SiteAdapter):
    """
    SiteAdapter reading fields through per-site selector lists.

    Subclasses set SITE_ID and the selector tuples; every tuple is tried in
    order and the first selector with a non-empty match wins.
    """

    SITE_ID: str = ''

    # Listing card fields
    TITLE_SELECTORS: Tuple[str, ...] = ()
    LINK_SELECTORS: Tuple[str, ...] = ()
    COMPANY_SELECTORS: Tuple[str, ...] = ()
    CONDITION_SELECTORS: Tuple[str, ...] = ()
    LOCATION_SELECTORS: Tuple[str, ...] = ()
    EXPERIENCE_SELECTORS: Tuple[str, ...] = ()
    SALARY_SELECTORS: Tuple[str, ...] = ()
    EMPLOYMENT_SELECTORS: Tuple[str, ...] = ()

    # Detail page fields
    DETAIL_SALARY_SELECTORS: Tuple[str, ...] = ()
    DETAIL_LOCATION_SELECTORS: Tuple[str, ...] = ()
    DEADLINE_SELECTORS: Tuple[str, ...] = ()

    def __init__(self, config=None):
        super().__init__(config or get_site_config(self.SITE_ID))

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def extract_title(self, element: Tag) -> Optional[str]:
        return first_text(element, self.TITLE_SELECTORS)

    def extract_link(self, element: Tag) -> Optional[str]:
        link = first_link(element, self.LINK_SELECTORS or self.TITLE_SELECTORS)
        if link is None and element.name == 'a':
            link = element
        return self.resolve_url(link.get('href')) if link is not None else None

    def extract_company(self, element: Tag) -> Optional[str]:
        return normalize_company(first_text(element, self.COMPANY_SELECTORS))

    def extract_conditions(self, element: Tag) -> Dict[str, Optional[str]]:
        conditions = classify_conditions(condition_chips(element, self.CONDITION_SELECTORS))
        explicit = {
            'location': first_text(element, self.LOCATION_SELECTORS),
            'experience_level': first_text(element, self.EXPERIENCE_SELECTORS),
            'salary': first_text(element, self.SALARY_SELECTORS),
            'employment_type': first_text(element, self.EMPLOYMENT_SELECTORS),
        }
        for key, value in explicit.items():
            if value:
                conditions[key] = value
        return conditions

    def parse_summary(self, element: Tag) -> Optional[JobSummary]:
        title = clean_text(self.extract_title(element))
        company = self.extract_company(element)
        if not title or not company:
            self.logger.debug(f"Listing element without title or company (title={title!r}, company={company!r})")
            return None

        conditions = self.extract_conditions(element)
        return JobSummary(
            title=title,
            company=company,
            detail_url=self.extract_link(element),
            source_site=self.site_id,
            location=conditions.get('location'),
            salary=conditions.get('salary'),
            employment_type=conditions.get('employment_type'),
            experience_level=conditions.get('experience_level'),
            job_category=self.config.job_category,
        )

    # ------------------------------------------------------------------
    # Detail
    # ------------------------------------------------------------------

    def parse_detail(self, element: Any) -> Dict[str, Any]:
        """
        Read detail fields from the detail container or the whole page.

        Returns:
            Dict with any of description, requirements, benefits, salary,
            location, deadline
        """
        if element is None:
            return {}

        text = text_of(element)
        fields: Dict[str, Any] = {}
        if text and len(text) > MIN_DESCRIPTION_LENGTH:
            fields['description'] = text[:MAX_DESCRIPTION_LENGTH]
            fields['requirements'] = extract_section(text, 'requirements')
            fields['benefits'] = extract_section(text, 'benefits')

        fields['salary'] = first_text(element, self.DETAIL_SALARY_SELECTORS) or extract_salary(text)
        fields['location'] = first_text(element, self.DETAIL_LOCATION_SELECTORS)
        fields['deadline'] = parse_deadline(
            first_text(element, self.DEADLINE_SELECTORS) or extract_deadline_text(text)
        )
        return {k: v for k, v in fields.items() if v}
