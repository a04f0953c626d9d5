"""JobKorea (잡코리아) adapter."""

from .common import JobBoardAdapter


class JobKoreaAdapter(JobBoardAdapter):
    SITE_ID = 'jobkorea'

    TITLE_SELECTORS = ('.post-list-info a.title', '.post-list-info .title', '.information-title a', '.title a', 'a.title')
    COMPANY_SELECTORS = ('.post-list-corp a.name', '.post-list-corp .name', '.corp-name a', '.corp-name', '.name')
    CONDITION_SELECTORS = ('.post-list-info .option span', '.chip-information-group li', '.option span')
    LOCATION_SELECTORS = ('.option .loc', '.loc.long')
    EXPERIENCE_SELECTORS = ('.option .exp',)
    DEADLINE_SELECTORS = ('.option .date', '.tplTbl .date', '.date')
    DETAIL_SALARY_SELECTORS = ('.tbList dd .tahoma', '.salary')
    DETAIL_LOCATION_SELECTORS = ('.address .addr', '.tbAdd .addr')
