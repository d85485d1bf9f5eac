import argparse
from urllib.parse import parse_qs, urlsplit

import pytest
import requests

from failed_asset_report.account_lister import AccountLister
from failed_asset_report.api_client import ApiClientWrapper
from failed_asset_report.findings_fetcher import FindingsFetcher
from failed_asset_report.models import Credentials, LicenseContext
from failed_asset_report.orchestrator import ReportOrchestrator
from failed_asset_report.row_flattener import RowFlattener
from failed_asset_report.token_client import TokenClient


LICENSE_ID = "6f1c2a9e-0d4b-4c55-9a4c-2a7f3b1e8d10"
ACCOUNT_A1 = "0a8e1c52-7f3d-4a0e-9c1b-5d2e6f7a8b90"
ACCOUNT_A2 = "1b9f2d63-8a4e-4b1f-8d2c-6e3f7a8b9c01"
DOMAIN = "cspm-api-qa.azure-api.net"


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else ("" if payload is None else str(payload))

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Client Error", response=self)


class FakeSession:
    """Stands in for requests.Session, answering from a handler callable."""

    def __init__(self, handler):
        self.handler = handler
        self.headers = {}
        self.calls = []

    def request(self, method, url, timeout=None, headers=None, params=None, json=None):
        call = {
            'method': method,
            'url': url,
            'timeout': timeout,
            'headers': dict(self.headers, **(headers or {})),
            'params': params,
            'json': json,
        }
        self.calls.append(call)
        return self.handler(call)


def make_asset(index, tags=None):
    return {
        'resourceName': f"bucket-{index}",
        'accessLevel': 'Public',
        'resourceType': 'S3 Bucket',
        'resourceId': f"arn:aws:s3:::bucket-{index}",
        'policyId': f"POL-{index:03d}",
        'policyTitle': 'Buckets must not be public',
        'region': 'us-east-1',
        'tags': tags if tags is not None else ['env:prod'],
    }


def make_page(account_id, failed_asset_count, assets):
    return {
        'result': {
            'failedAssetCount': failed_asset_count,
            'failedAssets': [
                {
                    'accountId': account_id,
                    'accountName': f"account-{account_id[:4]}",
                    'connectorType': 'AWS',
                    'benchmarkId': 'CSBP',
                    'benchmarkName': 'Cloud Security Best Practices',
                    'failedPolicyAssetsLists': assets,
                }
            ],
        }
    }


class FakeCspmApi:
    """
    In-memory CSPM API.

    ``findings`` maps account id -> {'count': n, 'pages': {page_number: [assets]}}.
    """

    def __init__(self, accounts=None, apis=None, findings=None):
        self.accounts = accounts or []
        self.apis = ['Account.Audit', 'Account.Read'] if apis is None else apis
        self.findings = findings or {}
        self.failing_tokens = set()
        self.failing_pages = set()
        self.license_token_status = 200
        self.listing_status = 200
        self.session = FakeSession(self.handle)

    def calls_to(self, fragment):
        return [call for call in self.session.calls if fragment in call['url']]

    def page_numbers(self, account_id):
        numbers = []
        for call in self.calls_to(f"/account/{account_id}/failedassets"):
            query = parse_qs(urlsplit(call['url']).query)
            numbers.append(int(query['pageNumber'][0]))
        return numbers

    def handle(self, call):
        path = urlsplit(call['url']).path
        query = parse_qs(urlsplit(call['url']).query)

        if path.endswith('/token'):
            account_id = (call['params'] or {}).get('accountId')
            if account_id is None:
                if self.license_token_status != 200:
                    return FakeResponse(self.license_token_status, {'error': {'message': 'invalid secret'}})
                return FakeResponse(payload={'result': {'token': 'license-token'}})
            if account_id in self.failing_tokens:
                return FakeResponse(401, {'message': f"Account {account_id} is not onboarded"})
            return FakeResponse(payload={'result': {'token': f"token-{account_id}"}})

        if path.endswith('/licenseAccounts'):
            if self.listing_status != 200:
                return FakeResponse(self.listing_status, text='Service Unavailable')
            return FakeResponse(payload={
                'result': {
                    'accounts': [{'accountId': account_id} for account_id in self.accounts],
                    'apis': self.apis,
                }
            })

        if path.endswith('/failedassets'):
            account_id = path.split('/account/')[1].split('/')[0]
            page_number = int(query['pageNumber'][0])
            if (account_id, page_number) in self.failing_pages:
                return FakeResponse(500, {'error': {'message': 'audit backend timeout'}})
            data = self.findings[account_id]
            return FakeResponse(payload=make_page(account_id, data['count'], data['pages'].get(page_number, [])))

        return FakeResponse(404, text='Not Found')


@pytest.fixture
def license_context():
    return LicenseContext(license_id=LICENSE_ID, domain=DOMAIN, benchmark_id='CSBP')


@pytest.fixture
def credentials():
    return Credentials(application_id='report-app', secret='s3cr3t', subscription_key='sub-key')


@pytest.fixture
def fake_api():
    return FakeCspmApi()


@pytest.fixture
def client_wrapper(license_context, credentials, fake_api):
    return ApiClientWrapper(license_context, credentials, session=fake_api.session)


@pytest.fixture
def output_path(tmp_path):
    return tmp_path / "failed_asset-20261018-120000.csv"


@pytest.fixture
def orchestrator(client_wrapper, output_path):
    return ReportOrchestrator(
        token_client=TokenClient(client_wrapper),
        account_lister=AccountLister(client_wrapper),
        findings_fetcher=FindingsFetcher(client_wrapper),
        row_flattener=RowFlattener(),
        output_path=output_path
    )


@pytest.fixture
def cli_args(tmp_path):
    return argparse.Namespace(
        environment='qa',
        license_id=LICENSE_ID,
        account_ids=None,
        benchmark_id='CSBP',
        api_key_file=None,
        application_id=None,
        output_dir=str(tmp_path),
        excel=False,
        max_attempts=1,
        backoff=30,
        timeout=60,
    )
