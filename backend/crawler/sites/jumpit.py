"""
Jumpit (점핏) adapter.

Position cards are usually anchors themselves (`a[href^='/position/']`),
so the link falls back to the card element when no inner link matches.
"""

from .common import JobBoardAdapter


class JumpitAdapter(JobBoardAdapter):
    SITE_ID = 'jumpit'

    TITLE_SELECTORS = ('.position-title', 'h2', 'h3', '.title')
    LINK_SELECTORS = ("a[href*='/position/']",)
    COMPANY_SELECTORS = ('.company-name', '.company span', '.company')
    CONDITION_SELECTORS = ('.position-info li', 'ul.conditions li', 'ul li')
    DETAIL_LOCATION_SELECTORS = ('.work-location', '.address')
    DEADLINE_SELECTORS = ('.deadline', '.due-date')
