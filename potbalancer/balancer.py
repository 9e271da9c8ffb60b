"""
Balance Corrector

Keeps a current account on its target balance by moving money to or from
a single pot after each transaction.

TWO PATHS:

1. AMOUNT-AWARE (KnownAmount) - the triggering transaction's signed amount
   is the correction. Money in is swept to the pot as-is; money out is
   covered from the pot as far as it can be. The account balance is never
   read, so concurrent webhooks cannot see each other's half-applied state.

2. FALLBACK (UnknownAmount) - no amount available, so the correction is
   balance - target. Two concurrent fallback calls can both observe the
   same excess or deficit and both correct it. This is a known limitation;
   dedupe ids only collapse redeliveries of the SAME transaction.

GUARANTEES:
- At most one mutating ledger call per invocation
- Never a zero-amount transfer
- The dedupe id is always "balance-correction-<triggering id>"
- No retries and no caught ledger errors; failures reach the caller
"""

import asyncio
from typing import Optional

from potbalancer.audit import CorrectionLogger, get_logger
from potbalancer.models.correction import (
    CorrectionConfig,
    CorrectionOutcome,
    CorrectionResult,
    KnownAmount,
    PotSnapshot,
    TransferDirection,
    TransferIntent,
    TriggerEvent,
    UnknownAmount,
)
from potbalancer.models.ledger import Pot
from potbalancer.services.ledger import LedgerReader, LedgerWriter


class CorrectionError(Exception):
    """Base exception for balance correction errors."""
    pass


class PotNotFoundError(CorrectionError):
    """The configured pot is not among the account's pots."""

    def __init__(self, pot_id: str):
        self.pot_id = pot_id
        super().__init__(f"Pot {pot_id} not found")


def find_pot(pots: list[Pot], pot_id: str) -> PotSnapshot:
    """
    Pick the configured pot out of a pot listing.

    Deleted pots count as missing.

    Raises:
        PotNotFoundError: If no live pot has this ID
    """
    for pot in pots:
        if pot.id == pot_id and not pot.deleted:
            return PotSnapshot(pot_id=pot.id, available_balance=max(pot.balance, 0))
    raise PotNotFoundError(pot_id)


class BalanceCorrector:
    """
    Decides and (unless dry run) executes one corrective transfer.

    Holds no per-call state, so one instance can serve concurrent
    invocations.
    """

    def __init__(
        self,
        reader: LedgerReader,
        writer: LedgerWriter,
        logger: Optional[CorrectionLogger] = None,
    ):
        self._reader = reader
        self._writer = writer
        self._logger = logger or get_logger("potbalancer.balancer")

    async def correct(
        self,
        config: CorrectionConfig,
        event: TriggerEvent,
    ) -> CorrectionResult:
        """
        Bring the account back to target after `event`.

        Returns:
            What was decided and whether it was executed

        Raises:
            PotNotFoundError: If a pot lookup happens and the pot is missing
            LedgerError: Propagated unchanged from the ledger
        """
        match event.trigger:
            case KnownAmount(amount=amount):
                return await self._correct_known_amount(config, event, amount)
            case UnknownAmount():
                return await self._correct_from_balance(config, event)
            case other:
                raise TypeError(f"Unsupported trigger: {other!r}")

    # -------------------------------------------------------------------------
    # Decision paths
    # -------------------------------------------------------------------------

    async def _correct_known_amount(
        self,
        config: CorrectionConfig,
        event: TriggerEvent,
        amount: int,
    ) -> CorrectionResult:
        self._logger.info(
            "transaction_amount_received",
            amount=amount,
            target_balance=config.target_balance,
        )

        if amount == 0:
            self._logger.info("zero_amount_transaction")
            return CorrectionResult.no_op()

        if amount > 0:
            return await self._deposit(config, event, amount)

        pot = await self._get_pot_snapshot(config)
        return await self._withdraw(config, event, abs(amount), pot)

    async def _correct_from_balance(
        self,
        config: CorrectionConfig,
        event: TriggerEvent,
    ) -> CorrectionResult:
        balance, pot = await asyncio.gather(
            self._reader.get_balance(config.account_id),
            self._get_pot_snapshot(config),
        )
        current_balance = balance.balance

        self._logger.info(
            "balance_checked",
            current_balance=current_balance,
            target_balance=config.target_balance,
        )

        diff = current_balance - config.target_balance

        if diff == 0:
            self._logger.info("balance_on_target")
            return CorrectionResult.no_op()

        if diff > 0:
            return await self._deposit(config, event, diff)

        return await self._withdraw(config, event, abs(diff), pot)

    # -------------------------------------------------------------------------
    # Execution guards
    # -------------------------------------------------------------------------

    async def _get_pot_snapshot(self, config: CorrectionConfig) -> PotSnapshot:
        pots = await self._reader.get_pots(config.account_id)
        return find_pot(pots, config.pot_id)

    async def _deposit(
        self,
        config: CorrectionConfig,
        event: TriggerEvent,
        amount: int,
    ) -> CorrectionResult:
        intent = self._build_intent(
            TransferDirection.DEPOSIT_TO_POT, config, event, amount
        )
        self._logger.info(
            "deposit_decided",
            amount=amount,
            pot_id=config.pot_id,
        )
        return await self._execute(config, intent)

    async def _withdraw(
        self,
        config: CorrectionConfig,
        event: TriggerEvent,
        required: int,
        pot: PotSnapshot,
    ) -> CorrectionResult:
        available = pot.available_balance

        self._logger.info(
            "pot_balance_checked",
            pot_balance=available,
            needed=required,
        )

        if available == 0:
            self._logger.warning(
                "pot_empty",
                pot_id=config.pot_id,
                needed=required,
            )
            return CorrectionResult.no_op()

        partial = available < required
        if partial:
            self._logger.warning(
                "insufficient_pot_funds",
                available=available,
                needed=required,
            )

        amount = min(required, available)
        intent = self._build_intent(
            TransferDirection.WITHDRAW_FROM_POT, config, event, amount
        )
        self._logger.info(
            "withdrawal_decided",
            amount=amount,
            pot_id=config.pot_id,
            partial=partial,
        )
        return await self._execute(config, intent, partial=partial)

    def _build_intent(
        self,
        direction: TransferDirection,
        config: CorrectionConfig,
        event: TriggerEvent,
        amount: int,
    ) -> TransferIntent:
        return TransferIntent(
            direction=direction,
            amount=amount,
            idempotency_key=event.idempotency_key,
            account_id=config.account_id,
            pot_id=config.pot_id,
        )

    async def _execute(
        self,
        config: CorrectionConfig,
        intent: TransferIntent,
        partial: bool = False,
    ) -> CorrectionResult:
        """The single place money moves. Dry run stops here."""
        if config.dry_run:
            self._logger.info(
                "dry_run_skipped",
                direction=intent.direction.value,
                amount=intent.amount,
            )
            return CorrectionResult(
                outcome=CorrectionOutcome.SKIPPED_DRY_RUN,
                intent=intent,
                partial=partial,
            )

        if intent.direction == TransferDirection.DEPOSIT_TO_POT:
            await self._writer.deposit_into_pot(
                intent.pot_id,
                amount=intent.amount,
                dedupe_id=intent.idempotency_key,
                source_account_id=intent.account_id,
            )
        else:
            await self._writer.withdraw_from_pot(
                intent.pot_id,
                amount=intent.amount,
                dedupe_id=intent.idempotency_key,
                destination_account_id=intent.account_id,
            )

        self._logger.info(
            "transfer_executed",
            direction=intent.direction.value,
            amount=intent.amount,
            dedupe_id=intent.idempotency_key,
        )
        return CorrectionResult(
            outcome=CorrectionOutcome.EXECUTED,
            intent=intent,
            partial=partial,
        )


async def balance_account(
    client,
    config: CorrectionConfig,
    event: TriggerEvent,
    logger: Optional[CorrectionLogger] = None,
) -> CorrectionResult:
    """
    Run one correction with a client that both reads and writes the ledger.

    Convenience wrapper around BalanceCorrector for the common case of a
    single API client object.
    """
    return await BalanceCorrector(client, client, logger).correct(config, event)
