"""
Site configurations for the supported job boards.

Each site has a SiteConfig that defines:
- The listing URL template (parameterized by page number)
- Listing-card and detail-body selectors, tried in order
- Page cap and the per-page delay window
"""

from .base import SiteConfig


# ============================================================
# SITE CONFIGURATIONS
# ============================================================

SITES = {
    'saramin': SiteConfig(
        id='saramin',
        name='사람인',
        url_template='https://www.saramin.co.kr/zf_user/search/recruit?searchType=search&searchword=개발자&recruitPage={page}',
        base_url='https://www.saramin.co.kr',
        listing_selectors=(
            '.item_recruit', '.list_item', '.recruit_item', '.job_item',
            '[data-result]', '.contents .item',
        ),
        detail_selectors=(
            '.user_content', '.content', '.job_description', '.recruit_content',
            '.view_content', '.job_info .content', '#recrut_content',
            '.summary .content', '.cont', '.detail_content', '.job_detail',
            '.description', 'main .content', '.container .content',
            "[class*='content']", "[class*='description']", "[class*='detail']",
            'article', 'section', '.wrap_jview', '.section',
        ),
    ),

    'jobkorea': SiteConfig(
        id='jobkorea',
        name='잡코리아',
        url_template='https://www.jobkorea.co.kr/Search/?stext=개발자&Page_No={page}',
        base_url='https://www.jobkorea.co.kr',
        listing_selectors=(
            '.list-default .list-post', '.recruit-info', '.list-item',
            '.recruit-item', '[data-gno]', '.post-list-item',
        ),
        detail_selectors=(
            '.section-content', '.content', '.job-description',
            '.recruit-content', '.view-content', '.detail-content',
            '.job-detail', '.description',
        ),
    ),

    'wanted': SiteConfig(
        id='wanted',
        name='원티드',
        url_template='https://www.wanted.co.kr/search?query=개발자&tab=position&page={page}',
        base_url='https://www.wanted.co.kr',
        listing_selectors=('.JobCard', '.job-card', '.Card', '.position-card'),
        detail_selectors=(
            '.JobDescription', '.job-description', '.description',
            '.content', '.detail-content',
        ),
    ),

    'programmers': SiteConfig(
        id='programmers',
        name='프로그래머스',
        url_template='https://career.programmers.co.kr/job?page={page}',
        base_url='https://career.programmers.co.kr',
        listing_selectors=('.job-item', '.list-item', '.card'),
        detail_selectors=(
            '.job-content', '.content', '.description',
            '.detail-content', '.job-description',
        ),
    ),

    'jumpit': SiteConfig(
        id='jumpit',
        name='점핏',
        url_template='https://www.jumpit.co.kr/positions?page={page}',
        base_url='https://www.jumpit.co.kr',
        listing_selectors=('.position-item', '.job-card', '.card'),
        detail_selectors=(
            '.position-description', '.content', '.description',
            '.detail-content', '.job-description',
        ),
    ),
}


# ============================================================
# HELPER FUNCTIONS
# ============================================================

def get_site_config(site_id: str) -> SiteConfig:
    """
    Get configuration for a site by its id.

    Args:
        site_id: Site identifier (e.g., 'saramin', 'wanted')

    Returns:
        SiteConfig for the site

    Raises:
        ValueError: If site_id is not found
    """
    if site_id not in SITES:
        valid_keys = ', '.join(sorted(SITES.keys()))
        raise ValueError(f"Unknown site: '{site_id}'. Valid sites: {valid_keys}")
    return SITES[site_id]


def get_enabled_sites() -> dict:
    """Get all enabled sites."""
    return {k: v for k, v in SITES.items() if v.enabled}


def list_sites() -> list:
    """List all site ids."""
    return list(SITES.keys())


def get_supported_sites() -> dict:
    """Map of site id to display name."""
    return {k: v.name for k, v in SITES.items()}


def get_site_summary() -> list:
    """Get a summary of all sites for display."""
    summary = []
    for key, config in SITES.items():
        summary.append({
            'id': key,
            'name': config.name,
            'enabled': config.enabled,
            'url': config.listing_url(1),
            'max_pages': config.max_pages,
        })
    return summary
