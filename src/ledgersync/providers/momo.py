"""MTN Mobile Money collection API adapter (httpx).

Session: ``POST /collection/token/`` with basic auth (API user + key) and the
subscription key header, yielding a bearer token. Fetch: one ``GET`` of the
configured transactions path per reference, bearer-authenticated, until the
page limit is reached.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from ledgersync.config import Settings
from ledgersync.core.exceptions import ProviderUnavailableError
from ledgersync.providers.base import ProviderAdapter, RawProviderTransaction

logger = logging.getLogger(__name__)

TOKEN_PATH = "/collection/token/"


class MomoProvider(ProviderAdapter):
    """Live adapter for the MTN MoMo collection API."""

    def __init__(
        self,
        base_url: str,
        api_user: str | None,
        api_key: str | None,
        subscription_key: str | None,
        target_environment: str = "sandbox",
        transactions_path: str = "/collection/v1_0/transactions",
        timeout: float = 30.0,
        source: str = "mtn_momo",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.source = source
        self.base_url = base_url.rstrip("/")
        self.api_user = api_user
        self.api_key = api_key
        self.subscription_key = subscription_key
        self.target_environment = target_environment
        self.transactions_path = transactions_path
        self.timeout = timeout
        self._transport = transport
        self._http: httpx.AsyncClient | None = None
        self._access_token: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "MomoProvider":
        return cls(
            base_url=settings.momo_base_url,
            api_user=settings.momo_api_user,
            api_key=settings.momo_api_key,
            subscription_key=settings.momo_subscription_key,
            target_environment=settings.momo_target_environment,
            transactions_path=settings.momo_transactions_path,
            timeout=settings.provider_timeout_seconds,
            source=settings.provider_source,
            **kwargs,
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {"X-Target-Environment": self.target_environment}
        if self.subscription_key:
            headers["Ocp-Apim-Subscription-Key"] = self.subscription_key
        return headers

    async def initialize_session(self) -> None:
        """Request an access token.

        Raises:
            ProviderUnavailableError: If credentials are missing, the request
                fails, or the response carries no token
        """
        if not (self.api_user and self.api_key and self.subscription_key):
            raise ProviderUnavailableError(
                "Provider credentials are not configured",
                details={"provider": self.source},
            )

        try:
            response = await self._get_client().post(
                TOKEN_PATH,
                auth=(self.api_user, self.api_key),
                headers=self._headers(),
            )
            response.raise_for_status()
            token = response.json().get("access_token")
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailableError(
                details={"provider": self.source, "status_code": exc.response.status_code}
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderUnavailableError(
                details={"provider": self.source, "error_type": type(exc).__name__}
            ) from exc

        if not token:
            raise ProviderUnavailableError(
                "Provider did not return an access token",
                details={"provider": self.source},
            )
        self._access_token = token
        logger.info("Provider session initialized", extra={"provider": self.source})

    async def fetch_candidates(
        self, references: list[str], limit: int
    ) -> list[RawProviderTransaction]:
        """Fetch one bounded page across ``references``.

        Raises:
            ProviderUnavailableError: If the session is not initialized, a
                request fails, or the payload is not a list of records
        """
        if not self._access_token:
            raise ProviderUnavailableError(
                "Provider session is not initialized",
                details={"provider": self.source},
            )

        page: list[RawProviderTransaction] = []
        headers = {**self._headers(), "Authorization": f"Bearer {self._access_token}"}
        for reference in references:
            remaining = limit - len(page)
            if remaining <= 0:
                break
            items = await self._get_page(reference, remaining, headers)
            page.extend(items[:remaining])
        return page

    async def _get_page(
        self, reference: str, limit: int, headers: dict[str, str]
    ) -> list[RawProviderTransaction]:
        try:
            response = await self._get_client().get(
                self.transactions_path,
                params={"partyIdType": "MSISDN", "partyId": reference, "limit": limit},
                headers=headers,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise ProviderUnavailableError(
                details={"provider": self.source, "status_code": exc.response.status_code}
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderUnavailableError(
                details={"provider": self.source, "error_type": type(exc).__name__}
            ) from exc

        if isinstance(payload, dict):
            payload = payload.get("transactions", [])
        if not isinstance(payload, list):
            raise ProviderUnavailableError(
                "Malformed provider payload", details={"provider": self.source}
            )

        records: list[RawProviderTransaction] = []
        for item in payload:
            try:
                records.append(RawProviderTransaction.model_validate(item))
            except PydanticValidationError as exc:
                fields = ", ".join(
                    ".".join(str(part) for part in error["loc"]) or "record"
                    for error in exc.errors()
                )
                logger.warning(
                    "Malformed provider record",
                    extra={"provider": self.source, "fields": fields},
                )
                records.append(
                    RawProviderTransaction.rejected(item, f"Malformed provider record: {fields}")
                )
        return records
