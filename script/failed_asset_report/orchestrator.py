"""
Main per-account report loop for Failed Asset Reporting.
"""
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .account_lister import AccountLister
from .errors import AccountError, AuthError, FatalError, extract_error_message
from .findings_fetcher import FindingsFetcher, page_count
from .models import AccountStatus, RunResult, SummaryEntry
from .row_flattener import RowFlattener
from .token_client import TokenClient


class ReportOrchestrator:
    """
    Drives the report: resolve accounts, then fetch and flatten every
    page of failed assets for each account in turn.

    Failures while processing an account are recorded against that
    account and the loop moves on. Only account resolution can abort
    the run.
    """

    def __init__(self, token_client: TokenClient, account_lister: AccountLister,
                 findings_fetcher: FindingsFetcher, row_flattener: RowFlattener,
                 output_path: Path):
        self.token_client = token_client
        self.account_lister = account_lister
        self.findings_fetcher = findings_fetcher
        self.row_flattener = row_flattener
        self.output_path = Path(output_path)

    def resolve_accounts(self, account_ids: Optional[Sequence[str]] = None) -> List[str]:
        """Use the explicit account list if given, otherwise list accounts from the API."""
        if account_ids:
            print(f"Using {len(account_ids)} account(s) supplied on the command line")
            return list(account_ids)

        print("No accounts supplied, listing accounts under the license...")
        try:
            license_token = self.token_client.get_license_token()
        except AuthError as e:
            raise FatalError(str(e), operation="license token") from e

        return self.account_lister.list_accounts(license_token)

    def _flatten(self, account_id: str, page, page_number: int) -> int:
        try:
            return self.row_flattener.flatten(page, self.output_path)
        except (OSError, ValueError, TypeError, AttributeError) as e:
            raise AccountError(account_id, f"Failed to write page {page_number}: {e}") from e

    def _fetch_and_flatten(self, account_id: str) -> int:
        token = self.token_client.get_account_token(account_id)

        first_page = self.findings_fetcher.fetch_page(
            self.findings_fetcher.page_uri(account_id, 1), token
        )
        total_assets = self.findings_fetcher.failed_asset_count(first_page)
        pages = page_count(total_assets, self.findings_fetcher.page_size)
        print(f"  → {total_assets} failed assets across {pages} page(s)")

        rows = self._flatten(account_id, first_page, 1)
        for page_number in range(2, pages + 1):
            print(f"  → Fetching page {page_number}/{pages}")
            page = self.findings_fetcher.fetch_page(
                self.findings_fetcher.page_uri(account_id, page_number), token
            )
            rows += self._flatten(account_id, page, page_number)
        return rows

    def process_account(self, account_id: str) -> Tuple[SummaryEntry, int]:
        """Process one account, returning its summary entry and the rows written."""
        try:
            rows = self._fetch_and_flatten(account_id)
        except Exception as e:
            message = extract_error_message(e)
            print(f"  ⚠️ Account {account_id} failed: {message}")
            return SummaryEntry(account_id, AccountStatus.FAILED, message), 0

        return SummaryEntry(account_id, AccountStatus.SUCCESS, f"Number of records added: {rows}"), rows

    def run(self, account_ids: Optional[Sequence[str]] = None) -> RunResult:
        """
        Run the whole report.

        Raises:
            FatalError: Accounts could not be resolved. Nothing is processed.
        """
        accounts = self.resolve_accounts(account_ids)

        result = RunResult(output_path=self.output_path)
        for index, account_id in enumerate(accounts, 1):
            print(f"Processing account {index}/{len(accounts)}: {account_id}")
            entry, rows = self.process_account(account_id)
            result = RunResult(
                output_path=result.output_path,
                entries=result.entries + (entry,),
                total_rows=result.total_rows + rows
            )
        return result
