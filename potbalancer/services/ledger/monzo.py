"""
Monzo Ledger Client

Implements LedgerReader and LedgerWriter against the Monzo HTTP API.

This client handles:
1. Bearer authentication
2. Transparent token refresh on 401 (once per request)
3. Retrying transport failures with exponential backoff
4. Translating HTTP failures into LedgerError subclasses

Retrying pot transfers is safe: every deposit and withdrawal carries a
dedupe_id, so Monzo applies a replayed request at most once.
"""

from typing import Any, Awaitable, Callable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from potbalancer.audit import CorrectionLogger, get_logger
from potbalancer.config import MonzoSettings, get_settings
from potbalancer.models.ledger import AccountBalance, Pot, Transaction
from potbalancer.services.ledger.interface import (
    LedgerAuthenticationError,
    LedgerConnectionError,
    LedgerReader,
    LedgerRequestError,
    LedgerWriter,
)


TokenRefreshCallback = Callable[[str, str], Awaitable[None]]


class MonzoClient(LedgerReader, LedgerWriter):
    """
    Async Monzo API client.

    Use as an async context manager, or call close() when done.
    An injected http_client is never closed by this class.
    """

    def __init__(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        settings: Optional[MonzoSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        on_tokens_refreshed: Optional[TokenRefreshCallback] = None,
        logger: Optional[CorrectionLogger] = None,
        retry_wait: Optional[wait_base] = None,
    ):
        self._settings = settings or get_settings().monzo
        self._access_token = access_token
        self._refresh_token = refresh_token
        self._on_tokens_refreshed = on_tokens_refreshed
        self._logger = logger or get_logger("potbalancer.monzo")
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._owns_http_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=self._settings.request_timeout_seconds,
        )

    async def __aenter__(self) -> "MonzoClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_http_client:
            await self._http.aclose()

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        return self._refresh_token

    # -------------------------------------------------------------------------
    # LedgerReader
    # -------------------------------------------------------------------------

    async def get_balance(self, account_id: str) -> AccountBalance:
        response = await self._request(
            "GET", "/balance", params={"account_id": account_id}
        )
        return AccountBalance.model_validate(response.json())

    async def get_pots(self, account_id: str) -> list[Pot]:
        response = await self._request(
            "GET", "/pots", params={"current_account_id": account_id}
        )
        return [Pot.model_validate(pot) for pot in response.json().get("pots", [])]

    async def get_transaction(self, transaction_id: str) -> Transaction:
        response = await self._request("GET", f"/transactions/{transaction_id}")
        return Transaction.model_validate(response.json()["transaction"])

    # -------------------------------------------------------------------------
    # LedgerWriter
    # -------------------------------------------------------------------------

    async def deposit_into_pot(
        self,
        pot_id: str,
        *,
        amount: int,
        dedupe_id: str,
        source_account_id: str,
    ) -> None:
        await self._request(
            "PUT",
            f"/pots/{pot_id}/deposit",
            data={
                "source_account_id": source_account_id,
                "amount": str(amount),
                "dedupe_id": dedupe_id,
            },
        )

    async def withdraw_from_pot(
        self,
        pot_id: str,
        *,
        amount: int,
        dedupe_id: str,
        destination_account_id: str,
    ) -> None:
        await self._request(
            "PUT",
            f"/pots/{pot_id}/withdraw",
            data={
                "destination_account_id": destination_account_id,
                "amount": str(amount),
                "dedupe_id": dedupe_id,
            },
        )

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{self._settings.api_base_url}{path}"

    async def _send(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one request, retrying transport failures only."""
        headers = {"Authorization": f"Bearer {self._access_token}"} if authenticated else {}
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._settings.max_retries),
                wait=self._retry_wait,
                retry=retry_if_exception_type(httpx.TransportError),
                reraise=True,
            ):
                with attempt:
                    return await self._http.request(
                        method, self._url(path), headers=headers, **kwargs
                    )
        except httpx.TransportError as e:
            raise LedgerConnectionError(f"Monzo API unreachable: {e}") from e

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._send(method, path, **kwargs)

        if response.status_code == 401:
            if not self._refresh_token:
                raise LedgerAuthenticationError(
                    "Monzo rejected the access token and no refresh token is available",
                    response.text,
                )
            self._logger.warning(
                "monzo_unauthorized",
                method=method,
                path=path,
            )
            await self._refresh()
            response = await self._send(method, path, **kwargs)
            if response.status_code == 401:
                raise LedgerAuthenticationError(
                    "Monzo rejected the refreshed access token",
                    response.text,
                )

        if response.is_error:
            raise LedgerRequestError(
                response.status_code,
                f"Monzo {method} {path} failed",
                response.text,
            )
        return response

    async def _refresh(self) -> None:
        """Exchange the refresh token for a new token pair."""
        response = await self._send(
            "POST",
            "/oauth2/token",
            authenticated=False,
            data={
                "grant_type": "refresh_token",
                "client_id": self._settings.client_id,
                "client_secret": self._settings.client_secret,
                "refresh_token": self._refresh_token,
            },
        )
        if response.is_error:
            raise LedgerAuthenticationError(
                f"Token refresh failed with status {response.status_code}",
                response.text,
            )

        payload = response.json()
        self._access_token = payload["access_token"]
        self._refresh_token = payload.get("refresh_token", self._refresh_token)
        self._logger.info("token_refreshed")

        if self._on_tokens_refreshed is not None:
            await self._on_tokens_refreshed(self._access_token, self._refresh_token)
