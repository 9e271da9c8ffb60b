"""
Tests for the Monzo ledger client.

HTTP is served by httpx.MockTransport; nothing leaves the process.
"""

from urllib.parse import parse_qs

import httpx
import pytest
from tenacity import wait_none

from potbalancer.config import MonzoSettings
from potbalancer.services.ledger import (
    LedgerAuthenticationError,
    LedgerConnectionError,
    LedgerRequestError,
    MonzoClient,
)


API = "https://api.monzo.test"


@pytest.fixture
def settings() -> MonzoSettings:
    return MonzoSettings(
        client_id="oauth2client_1",
        client_secret="shh",
        api_base_url=API + "/",
        max_retries=3,
    )


def form(request: httpx.Request) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def make_client(settings, handler, **kwargs) -> MonzoClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MonzoClient(
        access_token="access_old",
        refresh_token="refresh_old",
        settings=settings,
        http_client=http,
        retry_wait=wait_none(),
        **kwargs,
    )


class TestReads:
    """Balance, pot and transaction lookups."""

    async def test_get_balance(self, settings):
        """Balance is read with the account id and bearer token."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"balance": 1234, "currency": "GBP", "spend_today": 0})

        balance = await make_client(settings, handler).get_balance("acc_1")

        assert balance.balance == 1234
        assert str(seen[0].url) == f"{API}/balance?account_id=acc_1"
        assert seen[0].headers["Authorization"] == "Bearer access_old"

    async def test_get_pots(self, settings):
        """Pots are listed for the current account."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["current_account_id"] == "acc_1"
            return httpx.Response(200, json={"pots": [
                {"id": "pot_1", "name": "Buffer", "balance": 500, "deleted": False},
                {"id": "pot_2", "name": "Old", "balance": 0, "deleted": True},
            ]})

        pots = await make_client(settings, handler).get_pots("acc_1")

        assert [(p.id, p.balance, p.deleted) for p in pots] == [
            ("pot_1", 500, False),
            ("pot_2", 0, True),
        ]

    async def test_get_transaction(self, settings):
        """A transaction is unwrapped from its envelope."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/transactions/tx_1"
            return httpx.Response(200, json={"transaction": {"id": "tx_1", "amount": -999}})

        tx = await make_client(settings, handler).get_transaction("tx_1")

        assert tx.amount == -999


class TestWrites:
    """Pot deposits and withdrawals."""

    async def test_deposit_into_pot(self, settings):
        """Deposits PUT the amount, source account and dedupe id as a form."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "pot_1"})

        await make_client(settings, handler).deposit_into_pot(
            "pot_1", amount=500, dedupe_id="balance-correction-tx_1", source_account_id="acc_1"
        )

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/pots/pot_1/deposit"
        assert form(seen[0]) == {
            "source_account_id": "acc_1",
            "amount": "500",
            "dedupe_id": "balance-correction-tx_1",
        }

    async def test_withdraw_from_pot(self, settings):
        """Withdrawals PUT the amount, destination account and dedupe id."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "pot_1"})

        await make_client(settings, handler).withdraw_from_pot(
            "pot_1", amount=300, dedupe_id="balance-correction-tx_2", destination_account_id="acc_1"
        )

        assert seen[0].url.path == "/pots/pot_1/withdraw"
        assert form(seen[0]) == {
            "destination_account_id": "acc_1",
            "amount": "300",
            "dedupe_id": "balance-correction-tx_2",
        }


class TestErrors:
    """HTTP and transport failures."""

    async def test_http_error_raised(self, settings):
        """A non-2xx response raises LedgerRequestError with its status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="maintenance")

        with pytest.raises(LedgerRequestError) as exc_info:
            await make_client(settings, handler).get_balance("acc_1")

        assert exc_info.value.status_code == 503
        assert exc_info.value.body == "maintenance"

    async def test_transport_error_retried(self, settings):
        """Transport failures are retried before succeeding."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("boom", request=request)
            return httpx.Response(200, json={"balance": 1})

        balance = await make_client(settings, handler).get_balance("acc_1")

        assert balance.balance == 1
        assert len(attempts) == 3

    async def test_transport_error_exhausted(self, settings):
        """Persistent transport failures become LedgerConnectionError."""
        attempts = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(request)
            raise httpx.ConnectError("boom", request=request)

        with pytest.raises(LedgerConnectionError):
            await make_client(settings, handler).get_pots("acc_1")

        assert len(attempts) == settings.max_retries


class TestTokenRefresh:
    """401 handling."""

    async def test_refresh_and_replay(self, settings):
        """A 401 refreshes the tokens, persists them, and replays the request."""
        saved = []
        auth_headers = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth2/token":
                assert form(request) == {
                    "grant_type": "refresh_token",
                    "client_id": "oauth2client_1",
                    "client_secret": "shh",
                    "refresh_token": "refresh_old",
                }
                return httpx.Response(200, json={
                    "access_token": "access_new",
                    "refresh_token": "refresh_new",
                })
            auth_headers.append(request.headers["Authorization"])
            if request.headers["Authorization"] == "Bearer access_old":
                return httpx.Response(401, json={"code": "unauthorized.bad_access_token"})
            return httpx.Response(200, json={"balance": 42})

        async def on_refreshed(access_token: str, refresh_token: str) -> None:
            saved.append((access_token, refresh_token))

        client = make_client(settings, handler, on_tokens_refreshed=on_refreshed)
        balance = await client.get_balance("acc_1")

        assert balance.balance == 42
        assert auth_headers == ["Bearer access_old", "Bearer access_new"]
        assert saved == [("access_new", "refresh_new")]
        assert client.access_token == "access_new"

    async def test_refresh_failure(self, settings):
        """A failed refresh raises LedgerAuthenticationError."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth2/token":
                return httpx.Response(400, json={"code": "bad_request.invalid_grant"})
            return httpx.Response(401)

        with pytest.raises(LedgerAuthenticationError, match="Token refresh failed"):
            await make_client(settings, handler).get_balance("acc_1")

    async def test_still_unauthorized_after_refresh(self, settings):
        """A second 401 after refreshing is not retried again."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            if request.url.path == "/oauth2/token":
                return httpx.Response(200, json={"access_token": "a2", "refresh_token": "r2"})
            return httpx.Response(401)

        with pytest.raises(LedgerAuthenticationError) as exc_info:
            await make_client(settings, handler).get_balance("acc_1")

        assert exc_info.value.status_code == 401
        assert calls == ["/balance", "/oauth2/token", "/balance"]

    async def test_no_refresh_token(self, settings):
        """Without a refresh token a 401 fails immediately."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401)

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = MonzoClient(access_token="a", refresh_token=None, settings=settings, http_client=http)

        with pytest.raises(LedgerAuthenticationError, match="no refresh token"):
            await client.get_balance("acc_1")


class TestLifecycle:
    """Client ownership of the HTTP connection pool."""

    async def test_injected_http_client_left_open(self, settings):
        """Closing the MonzoClient does not close a client it was handed."""
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))

        async with MonzoClient(access_token="a", settings=settings, http_client=http):
            pass

        assert not http.is_closed
        await http.aclose()

    async def test_owned_http_client_closed(self, settings):
        """A client the MonzoClient created is closed on exit."""
        async with MonzoClient(access_token="a", settings=settings) as client:
            pass

        assert client._http.is_closed
