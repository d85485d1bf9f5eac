"""
Account enumeration for Failed Asset Reporting.
"""
from typing import List

import requests

from .api_client import ApiClientWrapper
from .config import REQUIRED_API_SCOPE
from .errors import FatalError, MissingScopeError, extract_error_message


class AccountLister:
    """Lists the accounts under a license and checks the token's API scopes."""

    def __init__(self, client_wrapper: ApiClientWrapper, required_scope: str = REQUIRED_API_SCOPE):
        """Initialize account lister with client wrapper and required scope."""
        self.client_wrapper = client_wrapper
        self.required_scope = required_scope

    def list_accounts(self, license_token: str) -> List[str]:
        """
        Get account IDs under the license in the order the API returns them.

        Args:
            license_token: License scoped bearer token

        Returns:
            List of account IDs

        Raises:
            FatalError: The listing call failed or returned an unusable body
            MissingScopeError: The token does not grant the audit API scope
        """
        license_id = self.client_wrapper.license_context.license_id
        url = self.client_wrapper.url(f"onboarding/license/{license_id}/licenseAccounts")

        try:
            response = self.client_wrapper.get_json(url, license_token)
        except (requests.exceptions.RequestException, ValueError) as e:
            raise FatalError(extract_error_message(e), operation="account listing") from e

        result = response.get('result') if isinstance(response, dict) else None
        if not isinstance(result, dict):
            raise FatalError("Account listing response did not contain a result", operation="account listing")

        apis = result.get('apis') or []
        if self.required_scope not in apis:
            raise MissingScopeError(self.required_scope, apis)

        accounts = result.get('accounts') or []
        if not isinstance(accounts, list) or not all(isinstance(account, dict) for account in accounts):
            raise FatalError("Account listing response has malformed accounts entries", operation="account listing")
        account_ids = [account['accountId'] for account in accounts if account.get('accountId')]
        print(f"Found {len(account_ids)} accounts under license {license_id}")
        return account_ids
