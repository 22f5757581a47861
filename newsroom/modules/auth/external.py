"""
External Auth API client.

Credentials are checked by a third-party API; this app only keeps a local
mirror of the user and its own access tokens. The same API also owns the
webs-views resource, which is forwarded through request().
"""

import requests

from ...core.config import as_bool
from ...core.errors import AuthError, AuthServiceUnavailable, ConfigurationError, TransportError
from ...core.logging_service import LoggingService


class AuthApiService:
    """Thin client for the external auth API"""

    def __init__(self, base_url, timeout=30, verify_ssl=True):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.verify_ssl = verify_ssl

    @classmethod
    def from_config(cls, config):
        return cls(
            config.get('AUTH_API_BASE_URL'),
            timeout=int(config.get('AUTH_API_TIMEOUT') or 30),
            verify_ssl=as_bool(config.get('AUTH_API_VERIFY_SSL'), True),
        )

    def request(self, method, path, token=None, **kwargs):
        """
        Send one request to the external API and return the raw response.

        Raises ConfigurationError when no base URL is set and TransportError
        when the API cannot be reached. HTTP error statuses are returned,
        not raised.
        """
        if not self.base_url:
            raise ConfigurationError('AUTH_API_BASE_URL is not configured')

        headers = {'Accept': 'application/json'}
        if token:
            headers['Authorization'] = f'Bearer {token}'

        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, headers=headers, timeout=self.timeout,
                                        verify=self.verify_ssl, **kwargs)
        except requests.RequestException as e:
            LoggingService.error('auth', 'Auth API unreachable', {
                'method': method,
                'url': url,
                'error': str(e),
            })
            raise TransportError(f"Auth API unreachable: {e}") from e

        LoggingService.log_api_call('auth', url, method, response.status_code)
        return response

    def login(self, email, password):
        """
        Check credentials against the external API.

        Returns the upstream JSON body on success.
        Raises AuthError for rejected credentials, TransportError otherwise.
        """
        response = self.request('POST', '/auth/login', json={'email': email, 'password': password})

        if response.status_code >= 500:
            LoggingService.warning('auth', 'Auth API login error', {
                'email': email,
                'status': response.status_code,
            })
            raise TransportError(f"Auth API returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError('Auth API returned an invalid JSON response') from e

        if 200 <= response.status_code < 300 and data.get('status') == 'success':
            LoggingService.info('auth', 'External login succeeded', {'email': email})
            return data

        LoggingService.info('auth', 'External login rejected', {
            'email': email,
            'status': response.status_code,
        })
        raise AuthError(data.get('msg') or 'Credenciales incorrectas')

    def logout(self, token):
        """Revoke an external token. Raises TransportError on failure."""
        response = self.request('POST', '/auth/logout', token=token)
        if not 200 <= response.status_code < 300:
            raise TransportError(f"Auth API logout returned HTTP {response.status_code}")
        return True

    def validate_token(self, token):
        """
        True if the external API accepts the token.

        The API has no introspection endpoint, so the token is tried against
        the webs-views listing. Raises AuthServiceUnavailable when the API
        cannot be reached.
        """
        try:
            response = self.request('GET', '/webs-views', token=token)
        except TransportError as e:
            raise AuthServiceUnavailable(str(e)) from e
        return 200 <= response.status_code < 300


def upstream_user_name(data, fallback):
    """Display name from the upstream login payload"""
    user = ((data or {}).get('data') or {}).get('user') or {}
    if user.get('name'):
        return user['name']
    full_name = ' '.join(p for p in (user.get('firstname'), user.get('lastname')) if p)
    return full_name or fallback
