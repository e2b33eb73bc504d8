"""Page loading package."""

from esi_preview.scraper.fetcher import fetch_page
from esi_preview.scraper.models import RawPage

__all__ = ["fetch_page", "RawPage"]
