"""
Main orchestration logic for Failed Asset Reporting.
"""
import sys

from openpyxl.utils.exceptions import IllegalCharacterError

from .account_lister import AccountLister
from .api_client import ApiClientWrapper, RetryPolicy
from .config import (
    build_license_context, get_output_directory, get_output_filename, load_credentials,
    parse_arguments
)
from .errors import ConfigError, FatalError, extract_error_message
from .excel_generator import ExcelGenerator
from .findings_fetcher import FindingsFetcher
from .models import RunResult
from .orchestrator import ReportOrchestrator
from .row_flattener import RowFlattener
from .token_client import TokenClient


def step(title):
    print("-"*80)
    print(f"\033[1;36m{title}\033[0m")


def print_error(message):
    print(f"\033[0;31m[ERROR]\033[0m {message}", file=sys.stderr)


def print_summary(run_result: RunResult) -> None:
    """Print the per-account summary table and run totals."""
    print("\n" + "="*80)
    print("\033[1;32m=== Final Summary ===\033[0m")

    entries = run_result.sorted_entries()
    if entries:
        id_width = max(len('Account Id'), *(len(entry.account_id) for entry in entries))
        print(f"{'Account Id'.ljust(id_width)}  {'Status'.ljust(7)}  Detail")
        print(f"{'-' * id_width}  {'-' * 7}  {'-' * 30}")
        for entry in entries:
            print(f"{entry.account_id.ljust(id_width)}  {entry.status.value.ljust(7)}  {entry.detail}")

    print(f"\nTotal accounts processed: {run_result.processed}")
    print(f"Total accounts skipped: {run_result.skipped}")
    print(f"Total accounts passed: {run_result.passed}")
    print(f"Total records written: {run_result.total_rows}")

    if run_result.output_created:
        print(f"Output file: {run_result.output_path}")
    else:
        print(f"⚠️ No output file was created ({run_result.output_path}): no failed assets were written")


def write_excel_copy(run_result: RunResult) -> None:
    excel_generator = ExcelGenerator()
    copied = excel_generator.create_failed_assets_sheet(run_result.output_path)
    excel_generator.create_summary_sheet(run_result)
    excel_generator.save_workbook(run_result.output_path.with_suffix('.xlsx'))
    print(f"Copied {copied} rows into the Failed Assets sheet")


def build_orchestrator(args, credentials, output_path, session=None) -> ReportOrchestrator:
    """Wire the API client and report components together."""
    license_context = build_license_context(args)
    retry_policy = RetryPolicy(max_attempts=args.max_attempts, backoff_intervals=(args.backoff,))
    client_wrapper = ApiClientWrapper(
        license_context,
        credentials,
        session=session,
        retry_policy=retry_policy,
        timeout=args.timeout
    )
    return ReportOrchestrator(
        token_client=TokenClient(client_wrapper),
        account_lister=AccountLister(client_wrapper),
        findings_fetcher=FindingsFetcher(client_wrapper),
        row_flattener=RowFlattener(),
        output_path=output_path
    )


def main(argv=None):
    """Main function to orchestrate the failed asset export."""
    print("\n=== CSPM Failed Asset Reporting Tool ===")

    args = parse_arguments(argv)
    print(f"Environment: {args.environment}")
    print(f"License: {args.license_id}")
    print(f"Benchmark: {args.benchmark_id}")

    # Step 1: Initialize
    step("Step 1: Initializing")
    try:
        credentials = load_credentials(args)
        output_dir = get_output_directory(args)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / get_output_filename()
        orchestrator = build_orchestrator(args, credentials, output_path)
    except ConfigError as e:
        print_error(str(e))
        return 1
    print(f"Output file: {output_path}")

    # Step 2: Export failed assets
    step("Step 2: Exporting failed assets")
    try:
        run_result = orchestrator.run(args.account_ids)
    except FatalError as e:
        print_error(f"Fatal error during {e.operation}: {extract_error_message(e)}")
        return 1

    print_summary(run_result)

    # Step 3: Optional Excel copy
    if args.excel:
        step("Step 3: Writing Excel output")
        try:
            write_excel_copy(run_result)
        except (OSError, ValueError, IllegalCharacterError) as e:
            print(f"⚠️ Excel copy was not written: {e}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
