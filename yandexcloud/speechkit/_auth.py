from __future__ import annotations

import abc
import asyncio
import os
import time
from typing import Callable
from typing import Optional

from ._exceptions import ApiError
from ._exceptions import AuthenticationError
from ._exceptions import CancelledError
from ._exceptions import ConfigurationError
from ._logging import get_logger
from ._models import ConnectionConfig
from ._models import Credential
from ._transport import Transport

TOKEN_LIFETIME = 11.9 * 60 * 60
"""Seconds an IAM token is reused before refreshing. IAM tokens expire after 12 hours."""


class AuthBase(abc.ABC):
    """
    Abstract base class for authentication methods.
    """

    @property
    @abc.abstractmethod
    def needs_refresh(self) -> bool:
        """True when the next get_token() call has to obtain a new credential."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get_token(self) -> Credential:
        """
        Get a usable credential, refreshing it when needed.

        Raises:
            AuthenticationError: If a credential can't be obtained.
            CancelledError: If the call was cancelled.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def get_auth_headers(self) -> dict[str, str]:
        """
        Get authentication headers asynchronously.

        Returns:
            Dictionary of headers to include in the request.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release resources held by the authenticator."""
        pass


class ApiKeyAuth(AuthBase):
    """
    Authentication using a static service account API key.

    Args:
        api_key: Service account API key. Falls back to the YC_API_KEY
            environment variable.

    Examples:
        >>> auth = ApiKeyAuth("your-api-key")
        >>> headers = await auth.get_auth_headers()
        >>> print(headers)
        {'Authorization': 'Api-Key your-api-key'}
    """

    def __init__(self, api_key: Optional[str] = None) -> None:
        api_key = api_key or os.environ.get("YC_API_KEY")
        if not api_key:
            raise ConfigurationError("API key required: provide api_key or set YC_API_KEY")
        self._credential = Credential(token=api_key, obtained_at=time.monotonic())

    @property
    def needs_refresh(self) -> bool:
        return False

    async def get_token(self) -> Credential:
        return self._credential

    async def get_auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Api-Key {self._credential.token}"}


class OAuthTokenAuth(AuthBase):
    """
    Authentication with IAM tokens obtained for a user account.

    The account OAuth token is exchanged for a short-lived IAM token, which is
    reused until ``token_lifetime`` seconds have passed. Concurrent callers
    share a single refresh.

    Args:
        oauth_token: Account OAuth token. Falls back to the YC_OAUTH_TOKEN
            environment variable.
        iam_url: Token exchange endpoint. Falls back to YC_IAM_URL, then to
            the production endpoint.
        token_lifetime: Seconds to reuse a token for.
        conn_config: Connection configuration for the exchange requests.
        clock: Monotonic clock returning seconds.

    Raises:
        ConfigurationError: If no OAuth token is provided or found.

    Examples:
        >>> auth = OAuthTokenAuth("your-oauth-token")
        >>> headers = await auth.get_auth_headers()
        >>> print(headers)
        {'Authorization': 'Bearer t1.9euelZq...'}
    """

    BASE_URL = "https://iam.api.cloud.yandex.net/iam/v1/tokens"

    def __init__(
        self,
        oauth_token: Optional[str] = None,
        *,
        iam_url: Optional[str] = None,
        token_lifetime: float = TOKEN_LIFETIME,
        conn_config: Optional[ConnectionConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._oauth_token = oauth_token or os.environ.get("YC_OAUTH_TOKEN")
        if not self._oauth_token:
            raise ConfigurationError("OAuth token required: provide oauth_token or set YC_OAUTH_TOKEN")
        if token_lifetime <= 0:
            raise ConfigurationError("token_lifetime must be positive")

        self._iam_url = iam_url or os.environ.get("YC_IAM_URL") or self.BASE_URL
        self._token_lifetime = token_lifetime
        self._clock = clock
        self._transport = Transport(conn_config)
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def needs_refresh(self) -> bool:
        credential = self._credential
        return credential is None or credential.is_expired(self._clock(), self._token_lifetime)

    async def get_token(self) -> Credential:
        if not self.needs_refresh:
            assert self._credential is not None
            return self._credential

        try:
            async with self._lock:
                # Another caller may have refreshed while we waited
                if self.needs_refresh:
                    self._credential = await self._refresh()
                assert self._credential is not None
                return self._credential
        except CancelledError:
            raise
        except asyncio.CancelledError as e:
            raise CancelledError("Token refresh cancelled") from e

    async def get_auth_headers(self) -> dict[str, str]:
        credential = await self.get_token()
        return {"Authorization": f"Bearer {credential.token}"}

    async def close(self) -> None:
        await self._transport.close()

    async def _refresh(self) -> Credential:
        self._logger.info("Refreshing IAM token for account")
        obtained_at = self._clock()

        try:
            data = await self._transport.post_json(
                self._iam_url,
                json_data={"yandexPassportOauthToken": self._oauth_token},
            )
        except ApiError as e:
            raise AuthenticationError(f"Failed to refresh IAM token: {e}") from e

        token = data.get("iamToken") if isinstance(data, dict) else None
        if not token or not isinstance(token, str):
            raise AuthenticationError("Failed to refresh IAM token: response has no iamToken")

        self._logger.debug("IAM token refreshed (expires_at=%s)", data.get("expiresAt"))
        return Credential(token=token, obtained_at=obtained_at)
