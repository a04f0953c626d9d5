"""Programmers (프로그래머스) career adapter."""

from .common import JobBoardAdapter


class ProgrammersAdapter(JobBoardAdapter):
    SITE_ID = 'programmers'

    TITLE_SELECTORS = ('.position-title a', '.position-title', 'h5 a', '.title a', '.title')
    COMPANY_SELECTORS = ('.company-name', '.company', "[class*='company']")
    CONDITION_SELECTORS = ('.position-info li', '.job-info li')
    LOCATION_SELECTORS = ('.location',)
    EXPERIENCE_SELECTORS = ('.experience',)
    SALARY_SELECTORS = ('.salary',)
    DETAIL_SALARY_SELECTORS = ('.salary',)
    DETAIL_LOCATION_SELECTORS = ('.location', '.address')
