"""
Configuration management and argument parsing for Failed Asset Reporting.
"""
import argparse
import getpass
import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from types import MappingProxyType

from .errors import ConfigError
from .models import Credentials, LicenseContext


# Fixed environment to API host table
ENVIRONMENT_DOMAINS = MappingProxyType({
    'dev': 'cspm-api-dev.azure-api.net',
    'qa': 'cspm-api-qa.azure-api.net',
    'trial': 'cspm-api-trial.azure-api.net',
    'prod': 'cspm-api.azure-api.net',
    'prod1': 'cspm-api-prod1.azure-api.net',
})

DEFAULT_BENCHMARK_ID = 'CSBP'
PAGE_SIZE = 1000
REQUIRED_API_SCOPE = 'Account.Audit'
CSV_FILENAME_PREFIX = 'failed_asset'

DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_BACKOFF_SECONDS = 30
DEFAULT_TIMEOUT_SECONDS = 60

APPLICATION_ID_ENV = 'CSPM_APPLICATION_ID'
APPLICATION_SECRET_ENV = 'CSPM_APPLICATION_SECRET'
SUBSCRIPTION_KEY_ENV = 'CSPM_SUBSCRIPTION_KEY'


def uuid_string(value):
    """argparse type: accept a UUID and return its canonical lowercase form."""
    try:
        return str(uuid.UUID(value))
    except (ValueError, AttributeError, TypeError):
        raise argparse.ArgumentTypeError(f"'{value}' is not a valid UUID")


def positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"'{value}' must be at least 1")
    return number


def non_negative_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{value}' is not an integer")
    if number < 0:
        raise argparse.ArgumentTypeError(f"'{value}' must not be negative")
    return number


def build_parser():
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        description='Export failed CSPM audit assets for every account under a license to CSV',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # All accounts under the license, default CSBP benchmark
  python get_failed_assets.py -e prod -l 6f1c2a9e-0d4b-4c55-9a4c-2a7f3b1e8d10 -k api-key/prod-key.json

  # Specific accounts and a different benchmark
  python get_failed_assets.py -e qa -l 6f1c2a9e-0d4b-4c55-9a4c-2a7f3b1e8d10 \\
      -a 0a8e1c52-7f3d-4a0e-9c1b-5d2e6f7a8b90 -b HIPAA -k api-key/qa-key.json

  # Credentials from the environment, also write an Excel copy
  CSPM_APPLICATION_ID=... CSPM_APPLICATION_SECRET=... CSPM_SUBSCRIPTION_KEY=... \\
      python get_failed_assets.py -e prod -l 6f1c2a9e-0d4b-4c55-9a4c-2a7f3b1e8d10 --excel
        """
    )

    # Required arguments
    parser.add_argument(
        '-e', '--environment',
        required=True,
        choices=list(ENVIRONMENT_DOMAINS),
        help='API environment to report against'
    )
    parser.add_argument(
        '-l', '--license-id',
        required=True,
        type=uuid_string,
        help='License ID (UUID)'
    )

    # Scope
    parser.add_argument(
        '-a', '--account-ids',
        nargs='+',
        type=uuid_string,
        help='Account IDs to report on (default: every account under the license)'
    )
    parser.add_argument(
        '-b', '--benchmark-id',
        default=DEFAULT_BENCHMARK_ID,
        help=f'Benchmark ID to report failed assets for (default: {DEFAULT_BENCHMARK_ID})'
    )

    # Credentials
    parser.add_argument(
        '-k', '--api-key-file',
        help='Path to a JSON file holding applicationId, secret and subscriptionKey'
    )
    parser.add_argument(
        '--application-id',
        help=f'API application ID (or set {APPLICATION_ID_ENV})'
    )

    # Output
    parser.add_argument(
        '--output-dir',
        default='.',
        help='Directory for the CSV report (default: current directory)'
    )
    parser.add_argument(
        '--excel',
        action='store_true',
        help='Also write an Excel copy of the report with a summary sheet'
    )

    # Request policy
    parser.add_argument(
        '--max-attempts',
        type=positive_int,
        default=DEFAULT_MAX_ATTEMPTS,
        help='Attempts per API call before giving up (default: 1, no retries)'
    )
    parser.add_argument(
        '--backoff',
        type=positive_int,
        default=DEFAULT_BACKOFF_SECONDS,
        help=f'Seconds to wait between attempts (default: {DEFAULT_BACKOFF_SECONDS})'
    )
    parser.add_argument(
        '--timeout',
        type=non_negative_int,
        default=DEFAULT_TIMEOUT_SECONDS,
        help=f'Per-request timeout in seconds, 0 disables it (default: {DEFAULT_TIMEOUT_SECONDS})'
    )

    return parser


def parse_arguments(argv=None):
    """Parse command line arguments."""
    return build_parser().parse_args(argv)


def resolve_domain(environment: str, domains=ENVIRONMENT_DOMAINS) -> str:
    """Map an environment name to its API host."""
    try:
        return domains[environment]
    except KeyError:
        raise ConfigError(
            f"Unknown environment '{environment}'. Expected one of: {', '.join(domains)}"
        )


def build_license_context(args, domains=ENVIRONMENT_DOMAINS) -> LicenseContext:
    return LicenseContext(
        license_id=args.license_id,
        domain=resolve_domain(args.environment, domains),
        benchmark_id=args.benchmark_id
    )


def load_api_key_file(api_key_file):
    """Load application credentials from a JSON key file."""
    try:
        with open(api_key_file, 'r') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"API key file not found: {api_key_file}")
    except json.JSONDecodeError:
        raise ConfigError(f"Invalid JSON in API key file: {api_key_file}")

    if not isinstance(data, dict):
        raise ConfigError(f"API key file must contain a JSON object: {api_key_file}")
    return data


def load_credentials(args, environ=None, prompt=getpass.getpass) -> Credentials:
    """
    Resolve credentials from the CLI, key file, environment or a prompt.

    Secrets are only ever prompted for without echo and are never printed.
    """
    environ = os.environ if environ is None else environ
    key_data = load_api_key_file(args.api_key_file) if args.api_key_file else {}

    application_id = (
        args.application_id
        or key_data.get('applicationId')
        or environ.get(APPLICATION_ID_ENV)
    )
    if not application_id:
        raise ConfigError(
            f"No application ID given. Use --application-id, {APPLICATION_ID_ENV} or an API key file"
        )

    secret = key_data.get('secret') or environ.get(APPLICATION_SECRET_ENV)
    if not secret:
        secret = prompt('Application secret: ')

    subscription_key = key_data.get('subscriptionKey') or environ.get(SUBSCRIPTION_KEY_ENV)
    if not subscription_key:
        subscription_key = prompt('API subscription key: ')

    if not secret or not subscription_key:
        raise ConfigError("Application secret and API subscription key are both required")

    return Credentials(
        application_id=application_id,
        secret=secret,
        subscription_key=subscription_key
    )


def get_output_filename(now=None) -> str:
    """Generate the timestamped CSV report filename."""
    now = now or datetime.now()
    return f"{CSV_FILENAME_PREFIX}-{now.strftime('%Y%m%d-%H%M%S')}.csv"


def get_output_directory(args) -> Path:
    """Get the output directory path."""
    return Path(args.output_dir)
