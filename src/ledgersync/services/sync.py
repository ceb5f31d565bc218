"""Synchronization orchestrator.

One run for one owner:

    resolve active accounts -> initialize provider -> open audit log
    -> fetch one bounded page -> per item: dedup, classify, resolve
    category, insert or update -> finalize audit log

Item failures are collected in the result and never abort the run. Only
run-level failures (provider init/fetch, unexpected errors outside item
processing) end the run as Failed.

Only plain ids and strings are held across item boundaries: a rollback in
one item expires every ORM instance in the session.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.categorization import CategorizationEngine, extract_merchant_name
from ledgersync.config import settings
from ledgersync.core.exceptions import (
    LedgerSyncError,
    NoActiveAccountError,
    ProviderUnavailableError,
    SyncFailedError,
    ValidationError,
)
from ledgersync.core.result import rollback_quietly, service_operation
from ledgersync.core.validators import parse_amount, require_owner, to_minor_units
from ledgersync.models.base import utcnow
from ledgersync.models.sync_log import SyncStatus, SyncType
from ledgersync.models.transaction import Transaction
from ledgersync.providers import ProviderAdapter, RawProviderTransaction, get_provider
from ledgersync.repositories.account import LinkedAccountRepository
from ledgersync.repositories.sync_log import SyncLogRepository
from ledgersync.repositories.transaction import TransactionRepository
from ledgersync.schemas.sync import SyncedTransactionResponse, SyncLogResponse, SyncResult
from ledgersync.services.accounts import AccountService
from ledgersync.services.categories import CategoryResolver
from ledgersync.services.sync_log import SyncLogService

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Mobile money transaction"


class RunState(str, Enum):
    CREATED = "created"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"


# A run may fail before it starts (provider init); terminal states are final.
_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.CREATED: frozenset({RunState.IN_PROGRESS, RunState.FAILED}),
    RunState.IN_PROGRESS: frozenset({RunState.SUCCESS, RunState.FAILED}),
    RunState.SUCCESS: frozenset(),
    RunState.FAILED: frozenset(),
}


class IllegalTransitionError(RuntimeError):
    """Raised on a run state change the state machine does not allow."""


@dataclass
class SyncRun:
    """Mutable state of one run."""

    owner_id: UUID
    sync_type: SyncType
    state: RunState = RunState.CREATED
    log_id: UUID | None = None
    new: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.new + self.updated

    def transition(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise IllegalTransitionError(f"Cannot move sync run from {self.state.value} to {target.value}")
        self.state = target

    def result(self) -> SyncResult:
        return SyncResult(
            total=self.total,
            new=self.new,
            updated=self.updated,
            errors=list(self.errors),
            sync_log_id=self.log_id,
        )


@dataclass(frozen=True)
class ItemOutcome:
    transaction_id: UUID
    is_new: bool


class SyncOrchestrator:
    """Drives sync runs and exposes sync history for an owner."""

    def __init__(
        self,
        db: AsyncSession,
        provider: ProviderAdapter | None = None,
        engine: CategorizationEngine | None = None,
        page_size: int | None = None,
    ):
        self.db = db
        self.provider = provider or get_provider()
        self.engine = engine or CategorizationEngine()
        self.page_size = page_size or settings.sync_page_size
        self.account_service = AccountService(db, provider_source=self.provider.source)
        self.category_resolver = CategoryResolver(db)
        self.sync_logs = SyncLogService(db)
        self.account_repo = LinkedAccountRepository(db)
        self.transaction_repo = TransactionRepository(db)
        self.sync_log_repo = SyncLogRepository(db)

    @service_operation("SYNC_FAILED")
    async def sync_transactions(
        self, owner_id: UUID | None, sync_type: SyncType = SyncType.MANUAL
    ) -> SyncResult:
        """Run one synchronization for the owner.

        Args:
            owner_id: Authenticated owner
            sync_type: Recorded on the audit log entry

        Returns:
            SyncResult with counts, per-item errors and the audit log id

        Raises (reported in the result envelope):
            NoActiveAccountError: Owner has no active account for the provider
            ProviderUnavailableError: Provider init or fetch failed
            SyncFailedError: Any other run-level failure
        """
        owner_id = require_owner(owner_id)
        run = SyncRun(owner_id=owner_id, sync_type=SyncType(sync_type))

        accounts = await self.account_service.active_accounts(owner_id, self.provider.source)
        if not accounts:
            raise NoActiveAccountError(details={"provider": self.provider.source})

        account_ids = [account.id for account in accounts]
        references = [account.reference for account in accounts]
        account_by_reference = dict(zip(references, account_ids))
        primary_account_id = account_ids[0]

        try:
            await self._initialize_provider(run)
            run.log_id = await self.sync_logs.create(owner_id, primary_account_id, run.sync_type)
            run.transition(RunState.IN_PROGRESS)
            logger.info(
                "Sync started",
                extra={"sync_log_id": str(run.log_id), "accounts": len(account_ids)},
            )

            candidates = await self._fetch(run, references)

            try:
                for raw in candidates:
                    await self._process_candidate(run, raw, account_by_reference, primary_account_id)
            except Exception as exc:
                await self._fail(run, "Sync failed")
                raise SyncFailedError(details={"error_type": type(exc).__name__}) from exc
        finally:
            await self._close_provider()

        run.transition(RunState.SUCCESS)
        await self.sync_logs.finalize(
            run.log_id,
            SyncStatus.SUCCESS,
            run.total,
            item_error_count=len(run.errors),
        )
        await self._stamp_accounts(account_ids)

        logger.info(
            "Sync completed",
            extra={
                "sync_log_id": str(run.log_id),
                "total": run.total,
                "new": run.new,
                "updated": run.updated,
                "item_errors": len(run.errors),
            },
        )
        return run.result()

    async def _close_provider(self) -> None:
        try:
            await self.provider.close()
        except Exception as exc:
            logger.warning(
                "Provider close failed",
                extra={"provider": self.provider.source, "error_type": type(exc).__name__},
            )

    async def _initialize_provider(self, run: SyncRun) -> None:
        try:
            await self.provider.initialize_session()
        except ProviderUnavailableError:
            run.transition(RunState.FAILED)
            logger.warning("Provider initialization failed", extra={"provider": self.provider.source})
            raise
        except Exception as exc:
            run.transition(RunState.FAILED)
            logger.warning(
                "Provider initialization failed",
                extra={"provider": self.provider.source, "error_type": type(exc).__name__},
            )
            raise ProviderUnavailableError(details={"provider": self.provider.source}) from exc

    async def _fetch(self, run: SyncRun, references: list[str]) -> list[RawProviderTransaction]:
        try:
            return await self.provider.fetch_candidates(references, self.page_size)
        except ProviderUnavailableError as exc:
            await self._fail(run, exc.message)
            raise
        except Exception as exc:
            error = ProviderUnavailableError(
                details={"provider": self.provider.source, "error_type": type(exc).__name__}
            )
            await self._fail(run, error.message)
            raise error from exc

    async def _fail(self, run: SyncRun, message: str) -> None:
        run.transition(RunState.FAILED)
        await self.sync_logs.finalize(
            run.log_id,
            SyncStatus.FAILED,
            run.total,
            error_message=message,
            item_error_count=len(run.errors),
        )

    async def _process_candidate(
        self,
        run: SyncRun,
        raw: RawProviderTransaction,
        account_by_reference: dict[str, UUID],
        primary_account_id: UUID,
    ) -> None:
        reference = raw.payer.party_id if raw.payer else None
        account_id = account_by_reference.get(reference, primary_account_id)
        try:
            outcome = await self.process_item(
                run.owner_id, raw, account_id=account_id, sync_log_id=run.log_id, reference=reference
            )
        except LedgerSyncError as exc:
            await rollback_quietly(self.db)
            run.errors.append(self._item_error(raw, exc.message))
            logger.warning(
                "Transaction skipped",
                extra={"external_id": raw.external_id, "error_code": exc.error_code},
            )
            return
        except Exception as exc:
            await rollback_quietly(self.db)
            message = str(exc) if settings.debug else "An unexpected error occurred."
            run.errors.append(self._item_error(raw, message))
            logger.error(
                "Transaction processing failed",
                extra={"external_id": raw.external_id, "error_type": type(exc).__name__},
            )
            return

        if outcome.is_new:
            run.new += 1
        else:
            run.updated += 1

    @staticmethod
    def _item_error(raw: RawProviderTransaction, message: str) -> str:
        return f"Failed to process transaction {raw.external_id or '<missing id>'}: {message}"

    async def process_item(
        self,
        owner_id: UUID,
        raw: RawProviderTransaction,
        account_id: UUID | None = None,
        sync_log_id: UUID | None = None,
        reference: str | None = None,
    ) -> ItemOutcome:
        """Dedup, classify and persist one provider transaction.

        Repeated calls for the same (owner, external id) converge on one row:
        the first inserts, later ones update the row in place.

        Raises:
            ValidationError: Malformed record, missing external id or invalid amount
        """
        if raw.invalid_reason:
            raise ValidationError("record", raw.invalid_reason, raw.external_id)
        if not raw.external_id:
            raise ValidationError(
                "external_id",
                "Transaction external id is required",
                raw.external_id,
                error_code="VALIDATION_REQUIRED_FIELD",
            )
        amount = parse_amount("amount", raw.amount)

        merchants = self.engine.catalog.merchants
        merchant = extract_merchant_name(raw.payer_message, raw.payee_note, merchants)
        merchant_hint = None if merchant == merchants.sentinel else merchant
        free_text = f"{raw.payer_message or ''} {raw.payee_note or ''}".strip()
        classification = self.engine.classify(free_text, amount, raw.payer_info(), merchant_hint)

        category_id = await self.category_resolver.ensure_category(
            owner_id, classification.category_id, classification.direction
        )

        mutable = {
            "category_id": category_id,
            "direction": classification.direction,
            "confidence": classification.confidence,
            "auto_categorized": True,
            "needs_review": classification.needs_review,
            "merchant_name": merchant_hint,
            "provider_status": raw.status,
            "provider_financial_transaction_id": raw.financial_transaction_id,
        }

        existing = await self.transaction_repo.get_by_external_id(owner_id, raw.external_id)
        if existing is not None:
            return await self._update(existing, mutable)

        transaction = Transaction(
            owner_id=owner_id,
            account_id=account_id,
            sync_log_id=sync_log_id,
            amount=to_minor_units(amount),
            currency=raw.currency or settings.currency,
            txn_date=(raw.created_at or utcnow()).date(),
            description=raw.payer_message or raw.payee_note or DEFAULT_DESCRIPTION,
            provider_source=self.provider.source,
            provider_external_id=raw.external_id,
            provider_reference=reference,
            provider_payer_info=raw.payer_info(),
            **mutable,
        )
        try:
            transaction = await self.transaction_repo.create(transaction)
        except IntegrityError:
            # A concurrent run inserted this external id first.
            await self.db.rollback()
            existing = await self.transaction_repo.get_by_external_id(owner_id, raw.external_id)
            if existing is None:
                raise
            return await self._update(existing, mutable)
        return ItemOutcome(transaction_id=transaction.id, is_new=True)

    async def _update(self, existing: Transaction, mutable: dict) -> ItemOutcome:
        transaction_id = existing.id
        await self.transaction_repo.apply(existing, mutable)
        return ItemOutcome(transaction_id=transaction_id, is_new=False)

    async def _stamp_accounts(self, account_ids: list[UUID]) -> None:
        try:
            await self.account_repo.mark_synced(account_ids, utcnow())
        except SQLAlchemyError as exc:
            logger.error("Failed to stamp last_synced_at", extra={"error_type": type(exc).__name__})
            await rollback_quietly(self.db)

    @service_operation("FETCH_SYNC_HISTORY_ERROR")
    async def get_sync_history(self, owner_id: UUID | None, limit: int = 10) -> list[SyncLogResponse]:
        """The owner's most recent sync runs, newest first."""
        owner_id = require_owner(owner_id)
        entries = await self.sync_log_repo.get_recent(owner_id, limit)
        return [SyncLogResponse.model_validate(entry) for entry in entries]

    @service_operation("FETCH_TRANSACTIONS_ERROR")
    async def list_synced_transactions(
        self, owner_id: UUID | None, skip: int = 0, limit: int = 100
    ) -> list[SyncedTransactionResponse]:
        """Transactions that came from a provider, newest first."""
        owner_id = require_owner(owner_id)
        transactions = await self.transaction_repo.get_synced(owner_id, skip, limit)
        return [SyncedTransactionResponse.model_validate(t) for t in transactions]
