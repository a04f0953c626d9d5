"""Per-site adapter implementations."""

from typing import Dict, Type

from ..base import SiteAdapter
from .saramin import SaraminAdapter
from .jobkorea import JobKoreaAdapter
from .wanted import WantedAdapter
from .programmers import ProgrammersAdapter
from .jumpit import JumpitAdapter


# Registry of implemented adapters, keyed by site id
ADAPTERS: Dict[str, Type[SiteAdapter]] = {
    'saramin': SaraminAdapter,
    'jobkorea': JobKoreaAdapter,
    'wanted': WantedAdapter,
    'programmers': ProgrammersAdapter,
    'jumpit': JumpitAdapter,
}


def get_adapter(site_id: str) -> SiteAdapter:
    """
    Build the adapter for a site.

    Raises:
        KeyError: If no adapter is registered for site_id
    """
    if site_id not in ADAPTERS:
        raise KeyError(f"No adapter registered for site: '{site_id}'")
    return ADAPTERS[site_id]()


__all__ = [
    'ADAPTERS',
    'get_adapter',
    'SaraminAdapter',
    'JobKoreaAdapter',
    'WantedAdapter',
    'ProgrammersAdapter',
    'JumpitAdapter',
]
