"""
Wanted (원티드) adapter.

Wanted renders with React; class names carry generated suffixes, so the
selectors match on stable prefixes and attributes where possible.
"""

from .common import JobBoardAdapter


class WantedAdapter(JobBoardAdapter):
    SITE_ID = 'wanted'

    TITLE_SELECTORS = (
        '.job-card-position', "[class*='JobCard_title']", "strong[class*='position']", 'strong', 'h2',
    )
    LINK_SELECTORS = ("a[href*='/wd/']", 'a[href]')
    COMPANY_SELECTORS = ('.job-card-company-name', "[class*='CompanyName']", "span[class*='company']")
    LOCATION_SELECTORS = ('.job-card-company-location', "[class*='location']")
    SALARY_SELECTORS = ('.reward', "[class*='reward']")
    DETAIL_LOCATION_SELECTORS = ("[class*='JobWorkPlace'] span", '.work-place')
    DEADLINE_SELECTORS = ("[class*='JobDueTime'] span", '.due-time')
