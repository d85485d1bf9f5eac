"""
Paginated failed asset retrieval for Failed Asset Reporting.
"""
import math
from typing import Any, Dict
from urllib.parse import urlencode

from .api_client import ApiClientWrapper
from .config import PAGE_SIZE


def page_count(failed_asset_count: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages needed for the account's failed assets, never less than one."""
    if failed_asset_count <= page_size:
        return 1
    return math.ceil(failed_asset_count / page_size)


class FindingsFetcher:
    """Fetches pages of failed asset findings for one account at a time."""

    def __init__(self, client_wrapper: ApiClientWrapper, page_size: int = PAGE_SIZE):
        """Initialize findings fetcher with client wrapper and page size."""
        self.client_wrapper = client_wrapper
        self.page_size = page_size

    def page_uri(self, account_id: str, page_number: int) -> str:
        """URI of one failed assets page for the account and configured benchmark."""
        context = self.client_wrapper.license_context
        query = urlencode({
            'benchmarkId': context.benchmark_id,
            'pageNumber': page_number,
            'pageSize': self.page_size,
        })
        path = f"audit/license/{context.license_id}/account/{account_id}/failedassets"
        return f"{self.client_wrapper.url(path)}?{query}"

    def fetch_page(self, uri: str, account_token: str) -> Dict[str, Any]:
        """Fetch one page. HTTP and JSON errors propagate to the caller."""
        return self.client_wrapper.get_json(uri, account_token)

    @staticmethod
    def failed_asset_count(page: Dict[str, Any]) -> int:
        result = page.get('result') or {}
        return int(result.get('failedAssetCount') or 0)
