"""
Saramin (사람인) adapter.

Listing cards are `.item_recruit` blocks: the title link sits in
`.job_tit`, the company in `.corp_name`, and the condition chips
(location, experience, education, employment type) in `.job_condition`.
"""

from typing import Optional

from bs4 import Tag

from .common import JobBoardAdapter


class SaraminAdapter(JobBoardAdapter):
    SITE_ID = 'saramin'

    TITLE_SELECTORS = ('.job_tit a', '.job_tit', '.area_job .job_tit', '.title a', 'h2 a')
    COMPANY_SELECTORS = ('.corp_name a', '.corp_name', '.area_corp .corp_name', '.company_nm')
    CONDITION_SELECTORS = ('.job_condition span', '.conditions span')
    DEADLINE_SELECTORS = ('.info_period', '.job_date .date', '.deadlines')
    DETAIL_SALARY_SELECTORS = ('.jv_summary .salary', '.cont .salary')
    DETAIL_LOCATION_SELECTORS = ('.jv_location .address', '.work_place')

    def extract_title(self, element: Tag) -> Optional[str]:
        # The visible text is often truncated; the anchor's title attribute is not
        link = element.select_one('.job_tit a')
        if link is not None and link.get('title'):
            return link['title']
        return super().extract_title(element)
