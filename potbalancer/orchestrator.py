"""
Webhook Orchestrator for Pot Balancer

This module ties together storage, the Monzo client and the corrector,
and defines the end-to-end webhook flow:

    payload -> parse -> load account -> resolve trigger -> correct -> response

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only completed "transaction.created" events can move money; declines never do
- Transfers to/from the managed pot never trigger another correction
- Every failure becomes a 500 and a log line, never an unhandled crash
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from pydantic import ValidationError

from potbalancer.audit import (
    CorrectionLogger,
    configure_logging,
    describe_exception,
    get_logger,
)
from potbalancer.balancer import BalanceCorrector
from potbalancer.config import Settings, get_settings
from potbalancer.models.account import AccountRecord
from potbalancer.models.correction import CorrectionConfig, TriggerEvent
from potbalancer.models.webhook import TransactionData, WebhookEvent, WebhookResponse
from potbalancer.services.ledger import LedgerReader, MonzoClient, TokenRefreshCallback
from potbalancer.services.storage import AccountStorageInterface, SQLiteAccountStorage


ClientFactory = Callable[[AccountRecord, TokenRefreshCallback], MonzoClient]


class AccountNotConfiguredError(Exception):
    """A webhook arrived for an account with no stored configuration."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Missing Monzo configuration for account {account_id}")


def is_managed_pot_transaction(data: TransactionData, config: CorrectionConfig) -> bool:
    """
    True for the pot transfers we made ourselves.

    Monzo reports a pot transfer with the pot ID as its description and
    in metadata.pot_id.
    """
    return data.description == config.pot_id or data.pot_id == config.pot_id


class WebhookFlow:
    """
    Orchestrates handling of one webhook delivery.

    Flow:
    1. Parse → reject malformed payloads (400)
    2. Filter → ignore non-transaction events, declines and our own pot transfers
    3. Load → account config and tokens from storage
    4. Resolve → signed amount from the payload or the transaction
    5. Correct → BalanceCorrector, at most one transfer
    """

    def __init__(
        self,
        storage: AccountStorageInterface,
        client_factory: ClientFactory,
        settings: Optional[Settings] = None,
        logger: Optional[CorrectionLogger] = None,
    ):
        self._storage = storage
        self._client_factory = client_factory
        self._settings = settings or get_settings()
        self._logger = logger or get_logger("potbalancer.webhook")

    async def handle(self, payload: Any) -> WebhookResponse:
        """
        Handle a webhook body and return the HTTP response to send.

        Never raises; unexpected errors become a 500.
        """
        try:
            event = WebhookEvent.model_validate(payload)
        except ValidationError as e:
            self._logger.warning("webhook_malformed", error_count=e.error_count())
            return WebhookResponse.bad_request("Malformed webhook body")

        if not event.is_transaction_created:
            self._logger.info("webhook_ignored", event_type=event.type)
            return WebhookResponse.ok("Ignored event type")

        data = event.data
        if not data.account_id:
            self._logger.error("webhook_missing_account_id")
            return WebhookResponse.bad_request("Missing account_id")
        if not data.id:
            self._logger.error("webhook_missing_transaction_id", account_id=data.account_id)
            return WebhookResponse.bad_request("Missing transaction id")

        logger = self._logger.bind(account_id=data.account_id, transaction_id=data.id)
        logger.info("webhook_received", event_type=event.type)

        try:
            await self._process_transaction(data, logger)
        except Exception as e:
            logger.error("webhook_failed", **describe_exception(e))
            return WebhookResponse.server_error()

        return WebhookResponse.ok()

    async def _process_transaction(
        self,
        data: TransactionData,
        logger: CorrectionLogger,
    ) -> None:
        if data.is_declined:
            logger.info("declined_transaction_ignored", decline_reason=data.decline_reason)
            return

        async with self._ledger_client(data.account_id) as (client, config):
            if is_managed_pot_transaction(data, config):
                logger.info("managed_pot_transaction_ignored", pot_id=config.pot_id)
                return

            trigger_event = await self._resolve_trigger(data, client)
            corrector = BalanceCorrector(client, client, logger)
            result = await corrector.correct(config, trigger_event)

            logger.info(
                "correction_finished",
                outcome=result.outcome.value,
                partial=result.partial,
            )

    async def _resolve_trigger(
        self,
        data: TransactionData,
        reader: LedgerReader,
    ) -> TriggerEvent:
        """
        Prefer an authoritative amount over the balance-diff fallback.

        Payload amount first, then a transaction lookup if enabled.
        """
        amount = data.amount
        if amount is None and self._settings.correction.lookup_missing_amount:
            transaction = await reader.get_transaction(data.id)
            amount = transaction.amount
        return TriggerEvent.from_amount(data.id, amount)

    @asynccontextmanager
    async def _ledger_client(
        self,
        account_id: str,
    ) -> AsyncIterator[tuple[MonzoClient, CorrectionConfig]]:
        """Yield an authenticated client and the runtime config for an account."""
        account = await self._storage.get_account(account_id)
        if account is None:
            raise AccountNotConfiguredError(account_id)

        async def persist_tokens(access_token: str, refresh_token: str) -> None:
            await self._storage.save_tokens(account.user_id, access_token, refresh_token)

        client = self._client_factory(account, persist_tokens)
        async with client:
            yield client, account.to_correction_config()


def monzo_client_factory(settings: Settings) -> ClientFactory:
    """
    Build MonzoClients from stored accounts using the app's Monzo settings.

    Monzo settings are read on first use, so the app can start (and answer
    health checks) before credentials are configured.
    """

    def factory(account: AccountRecord, on_tokens_refreshed: TokenRefreshCallback) -> MonzoClient:
        return MonzoClient(
            access_token=account.access_token,
            refresh_token=account.refresh_token,
            settings=settings.monzo,
            on_tokens_refreshed=on_tokens_refreshed,
        )

    return factory


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[AccountStorageInterface] = None,
) -> WebhookFlow:
    """
    Factory function to create all application components.

    Args:
        settings: Application settings; loaded from the environment if None
        storage: Account storage; SQLite at the configured path if None

    Returns:
        The webhook flow, ready to serve
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    storage = storage or SQLiteAccountStorage(settings.storage.database_path)

    return WebhookFlow(
        storage=storage,
        client_factory=monzo_client_factory(settings),
        settings=settings,
    )
