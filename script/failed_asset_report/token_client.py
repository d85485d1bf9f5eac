"""
Bearer token acquisition for Failed Asset Reporting.
"""
import requests

from .api_client import ApiClientWrapper
from .errors import AuthError, extract_error_message


class TokenClient:
    """Exchanges application credentials for license or account scoped tokens."""

    def __init__(self, client_wrapper: ApiClientWrapper):
        """Initialize token client with the API client wrapper."""
        self.client_wrapper = client_wrapper

    @property
    def token_url(self) -> str:
        license_id = self.client_wrapper.license_context.license_id
        return self.client_wrapper.url(f"authorize/license/{license_id}/token")

    def _request_body(self):
        credentials = self.client_wrapper.credentials
        return {
            'APIApplicationId': credentials.application_id,
            'Secret': credentials.secret,
        }

    def _mint(self, params=None, scope='license'):
        try:
            response = self.client_wrapper.post_json(self.token_url, self._request_body(), params=params)
        except (requests.exceptions.RequestException, ValueError) as e:
            raise AuthError(f"Failed to get {scope} token: {extract_error_message(e)}") from e

        token = None
        if isinstance(response, dict) and isinstance(response.get('result'), dict):
            token = response['result'].get('token')
        if not token:
            raise AuthError(f"Token response for {scope} did not contain result.token")
        return token

    def get_license_token(self) -> str:
        """Mint a token scoped to the license. Used only to list accounts."""
        return self._mint(scope='license')

    def get_account_token(self, account_id: str) -> str:
        """Mint a token scoped to a single account."""
        return self._mint(params={'accountId': account_id}, scope=f"account {account_id}")
