"""
Data models shared across the Failed Asset Reporting modules.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple


class AccountStatus(Enum):
    """Outcome of processing one account."""
    FAILED = 'Failed'
    SUCCESS = 'Success'


# Failed accounts are listed first in the summary
STATUS_ORDER = {
    AccountStatus.FAILED: 0,
    AccountStatus.SUCCESS: 1,
}


@dataclass(frozen=True)
class Credentials:
    """Application credentials used to mint tokens."""
    application_id: str
    secret: str = field(repr=False)
    subscription_key: str = field(repr=False)


@dataclass(frozen=True)
class LicenseContext:
    """License, benchmark and API host a run is scoped to."""
    license_id: str
    domain: str
    benchmark_id: str = 'CSBP'

    @property
    def base_url(self) -> str:
        return f"https://{self.domain}"


@dataclass(frozen=True)
class SummaryEntry:
    account_id: str
    status: AccountStatus
    detail: str

    @property
    def succeeded(self) -> bool:
        return self.status is AccountStatus.SUCCESS


@dataclass(frozen=True)
class RunResult:
    """Outcome of a whole report run."""
    output_path: Path
    entries: Tuple[SummaryEntry, ...] = ()
    total_rows: int = 0

    @property
    def processed(self) -> int:
        return len(self.entries)

    @property
    def passed(self) -> int:
        return sum(1 for entry in self.entries if entry.succeeded)

    @property
    def skipped(self) -> int:
        return self.processed - self.passed

    @property
    def output_created(self) -> bool:
        return self.output_path.exists()

    def sorted_entries(self) -> Tuple[SummaryEntry, ...]:
        """Entries ordered by status, keeping processing order within a status."""
        return tuple(sorted(self.entries, key=lambda entry: STATUS_ORDER[entry.status]))
