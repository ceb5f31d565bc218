"""Integration tests for the sync orchestrator against a real database."""
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.core.exceptions import ProviderUnavailableError
from ledgersync.models.sync_log import SyncType
from ledgersync.providers import PayerParty, ProviderAdapter, RawProviderTransaction, SandboxProvider
from ledgersync.repositories.account import LinkedAccountRepository
from ledgersync.repositories.sync_log import SyncLogRepository
from ledgersync.repositories.transaction import TransactionRepository
from ledgersync.services.accounts import AccountService
from ledgersync.services.sync import SyncOrchestrator

REFERENCE = "0244123456"


class StubProvider(ProviderAdapter):
    """Provider double returning a fixed candidate list."""

    source = "mtn_momo"

    def __init__(self, candidates=(), init_error=None, fetch_error=None, close_error=None):
        self.candidates = list(candidates)
        self.init_error = init_error
        self.fetch_error = fetch_error
        self.close_error = close_error
        self.references = None
        self.closed = False

    async def initialize_session(self) -> None:
        if self.init_error:
            raise self.init_error

    async def fetch_candidates(self, references, limit):
        self.references = references
        if self.fetch_error:
            raise self.fetch_error
        return self.candidates[:limit]

    async def close(self) -> None:
        self.closed = True
        if self.close_error:
            raise self.close_error


def _raw(external_id, amount="25.50", message="Lunch at KFC Accra Mall", note="Food purchase", reference=REFERENCE):
    return RawProviderTransaction(
        external_id=external_id,
        amount=amount,
        payer=PayerParty(party_id=reference),
        payer_message=message,
        payee_note=note,
        financial_transaction_id=f"fin-{external_id}",
    )


async def _link(db_session, owner_id, reference=REFERENCE, name="Main wallet"):
    result = await AccountService(db_session, provider_source="mtn_momo").link_account(owner_id, reference, name)
    assert result.ok, result.error
    return result.data.id


class TestSandboxRuns:
    """Test full runs with the deterministic provider."""

    @pytest.mark.asyncio
    async def test_first_run_inserts_page(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        provider = SandboxProvider()

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.ok, result.error
        assert result.data.total == 5
        assert result.data.new == 5
        assert result.data.updated == 0
        assert result.data.errors == []

        entry = await SyncLogRepository(db_session).get_by_id(result.data.sync_log_id)
        assert entry.status == "success"
        assert entry.transactions_synced == 5
        assert entry.completed_at is not None
        assert entry.sync_type == "manual"

    @pytest.mark.asyncio
    async def test_repeat_runs_converge(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)

        first = await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(owner_id)
        second = await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(
            owner_id, SyncType.AUTOMATIC
        )

        assert first.data.new == 5
        assert second.data.new == 0
        assert second.data.updated == 5
        assert await TransactionRepository(db_session).count_by_owner(owner_id) == 5

    @pytest.mark.asyncio
    async def test_synced_rows_are_classified(self, db_session: AsyncSession, owner_id):
        account_id = await _link(db_session, owner_id)
        await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(owner_id)

        repo = TransactionRepository(db_session)
        lunch = await repo.get_by_external_id(owner_id, f"mock-{REFERENCE}-001")
        salary = await repo.get_by_external_id(owner_id, f"mock-{REFERENCE}-004")

        assert lunch.amount == 2550
        assert lunch.currency == "GHS"
        assert lunch.direction == "expense"
        assert lunch.merchant_name == "KFC"
        assert lunch.category.name == "Food Dining"
        assert lunch.category.icon_name == "restaurant"
        assert lunch.account_id == account_id
        assert lunch.provider_reference == REFERENCE
        assert lunch.provider_payer_info == {"partyIdType": "MSISDN", "partyId": REFERENCE}
        assert lunch.provider_financial_transaction_id == f"mock-fin-{REFERENCE}-001"
        assert lunch.auto_categorized is True
        assert lunch.needs_review is False
        assert lunch.confidence >= 40

        assert salary.direction == "income"
        assert salary.category.name == "Salary"
        assert salary.amount == 200000

    @pytest.mark.asyncio
    async def test_accounts_are_stamped(self, db_session: AsyncSession, owner_id):
        account_id = await _link(db_session, owner_id)

        await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(owner_id)
        db_session.expire_all()

        account = await LinkedAccountRepository(db_session).get_by_id(account_id)
        assert account.last_synced_at is not None

    @pytest.mark.asyncio
    async def test_items_mapped_to_their_account(self, db_session: AsyncSession, owner_id):
        first_id = await _link(db_session, owner_id, "0244123456", "Wallet one")
        second_id = await _link(db_session, owner_id, "0501234567", "Wallet two")
        provider = StubProvider(
            [
                _raw("a", reference="0244123456"),
                _raw("b", reference="0501234567"),
                _raw("c", reference="0209999999"),
            ]
        )

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        repo = TransactionRepository(db_session)
        assert (await repo.get_by_external_id(owner_id, "a")).account_id == first_id
        assert (await repo.get_by_external_id(owner_id, "b")).account_id == second_id
        # Unknown payer falls back to the most recently linked account.
        assert (await repo.get_by_external_id(owner_id, "c")).account_id == second_id
        entry = await SyncLogRepository(db_session).get_by_id(result.data.sync_log_id)
        assert entry.account_id == second_id
        assert set(provider.references) == {"0244123456", "0501234567"}


class TestItemFailures:
    """Item failures are collected; the run still succeeds."""

    @pytest.mark.asyncio
    async def test_bad_amount_is_skipped(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        provider = StubProvider(
            [
                _raw("t-1"),
                _raw("t-2", amount="15.00", message="Uber ride to work", note="Transportation"),
                _raw("t-3", amount="not-a-number"),
                _raw("t-4", amount="100.00", message="ECG electricity bill payment", note="Utility bill"),
                _raw("t-5", amount="2000.00", message="Monthly salary deposit", note="Salary payment"),
            ]
        )

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.ok
        assert result.data.total == 4
        assert result.data.errors == ["Failed to process transaction t-3: Transaction amount is invalid"]
        entry = await SyncLogRepository(db_session).get_by_id(result.data.sync_log_id)
        assert entry.status == "success"
        assert entry.transactions_synced == 4
        assert entry.item_error_count == 1
        assert await TransactionRepository(db_session).get_by_external_id(owner_id, "t-3") is None

    @pytest.mark.asyncio
    async def test_malformed_record_fails_only_itself(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        bad = RawProviderTransaction.rejected(
            {"externalId": "bad-1", "createdAt": "yesterday"}, "Malformed provider record: createdAt"
        )
        provider = StubProvider([_raw("t-1"), bad, _raw("t-2"), _raw("t-3"), _raw("t-4")])

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.ok
        assert result.data.total == 4
        assert result.data.errors == [
            "Failed to process transaction bad-1: Malformed provider record: createdAt"
        ]
        assert await TransactionRepository(db_session).get_by_external_id(owner_id, "bad-1") is None

    @pytest.mark.asyncio
    async def test_missing_external_id_and_negative_amount(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        provider = StubProvider([_raw(""), _raw("t-neg", amount="-4.00"), _raw("t-ok")])

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.data.total == 1
        assert result.data.errors == [
            "Failed to process transaction <missing id>: Transaction external id is required",
            "Failed to process transaction t-neg: Transaction amount must not be negative",
        ]

    @pytest.mark.asyncio
    async def test_unexpected_item_error_is_generic(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        orchestrator = SyncOrchestrator(db_session, provider=StubProvider([_raw("t-1"), _raw("t-2")]))
        orchestrator.category_resolver.ensure_category = AsyncMock(side_effect=RuntimeError("disk on fire"))

        result = await orchestrator.sync_transactions(owner_id)

        assert result.ok
        assert result.data.total == 0
        assert result.data.errors == [
            "Failed to process transaction t-1: An unexpected error occurred.",
            "Failed to process transaction t-2: An unexpected error occurred.",
        ]

    @pytest.mark.asyncio
    async def test_empty_text_goes_to_review(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        provider = StubProvider([_raw("t-1", amount="0", message=None, note=None)])

        await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        transaction = await TransactionRepository(db_session).get_by_external_id(owner_id, "t-1")
        assert transaction.description == "Mobile money transaction"
        assert transaction.merchant_name is None
        assert transaction.needs_review is True
        assert transaction.confidence == 20


class TestRunFailures:
    """Run-level failures end the run as Failed (or before it starts)."""

    @pytest.mark.asyncio
    async def test_no_active_account(self, db_session: AsyncSession, owner_id):
        provider = StubProvider([_raw("t-1")])

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert not result.ok
        assert result.error.code == "NO_ACTIVE_ACCOUNT"
        assert await SyncLogRepository(db_session).get_recent(owner_id) == []

    @pytest.mark.asyncio
    async def test_missing_owner(self, db_session: AsyncSession):
        result = await SyncOrchestrator(db_session, provider=StubProvider()).sync_transactions(None)

        assert result.error.code == "AUTH_USER_NOT_FOUND"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [ProviderUnavailableError(), RuntimeError("socket closed")])
    async def test_init_failure_creates_no_log(self, db_session: AsyncSession, owner_id, error):
        await _link(db_session, owner_id)
        provider = StubProvider([_raw("t-1")], init_error=error)

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.error.code == "PROVIDER_UNAVAILABLE"
        assert await SyncLogRepository(db_session).get_recent(owner_id) == []
        assert provider.closed

    @pytest.mark.asyncio
    async def test_fetch_failure_marks_log_failed(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        provider = StubProvider(fetch_error=RuntimeError("read timeout"))

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.error.code == "PROVIDER_UNAVAILABLE"
        (entry,) = await SyncLogRepository(db_session).get_recent(owner_id)
        assert entry.status == "failed"
        assert entry.error_message == "The provider service is temporarily unavailable."
        assert entry.completed_at is not None
        assert provider.closed

    @pytest.mark.asyncio
    async def test_close_failure_keeps_successful_run(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        provider = StubProvider([_raw("t-1")], close_error=RuntimeError("connection reset"))

        result = await SyncOrchestrator(db_session, provider=provider).sync_transactions(owner_id)

        assert result.ok, result.error
        assert result.data.total == 1
        assert provider.closed
        entry = await SyncLogRepository(db_session).get_by_id(result.data.sync_log_id)
        assert entry.status == "success"
        assert entry.completed_at is not None

    @pytest.mark.asyncio
    async def test_audit_log_failure_does_not_fail_run(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        orchestrator = SyncOrchestrator(db_session, provider=StubProvider([_raw("t-1")]))
        orchestrator.sync_logs.create = AsyncMock(return_value=None)

        result = await orchestrator.sync_transactions(owner_id)

        assert result.ok
        assert result.data.total == 1
        assert result.data.sync_log_id is None
        transaction = await TransactionRepository(db_session).get_by_external_id(owner_id, "t-1")
        assert transaction.sync_log_id is None


class TestConcurrentWrites:
    """Lost insert races resolve as lookups."""

    @pytest.mark.asyncio
    async def test_transaction_conflict_becomes_update(self, db_session: AsyncSession, owner_id):
        account_id = await _link(db_session, owner_id)
        orchestrator = SyncOrchestrator(db_session, provider=StubProvider())
        first = await orchestrator.process_item(owner_id, _raw("t-1"), account_id=account_id)

        real_lookup = orchestrator.transaction_repo.get_by_external_id
        calls = []

        async def stale_lookup(owner, external_id):
            calls.append(external_id)
            if len(calls) == 1:
                return None
            return await real_lookup(owner, external_id)

        orchestrator.transaction_repo.get_by_external_id = stale_lookup
        second = await orchestrator.process_item(owner_id, _raw("t-1", amount="30.00"), account_id=account_id)

        assert first.is_new is True
        assert second.is_new is False
        assert second.transaction_id == first.transaction_id
        assert len(calls) == 2
        assert await TransactionRepository(db_session).count_by_owner(owner_id) == 1


class TestRepeatedItems:
    """A re-reported transaction refreshes its mutable fields in place."""

    @pytest.mark.asyncio
    async def test_update_refreshes_mutable_fields(self, db_session: AsyncSession, owner_id):
        account_id = await _link(db_session, owner_id)
        orchestrator = SyncOrchestrator(db_session, provider=StubProvider())
        pending = _raw("t-1").model_copy(update={"status": "PENDING", "financial_transaction_id": None})
        first = await orchestrator.process_item(owner_id, pending, account_id=account_id)

        settled = _raw(
            "t-1", amount="2000.00", message="Monthly salary deposit", note="Salary payment"
        ).model_copy(update={"financial_transaction_id": "fin-9"})
        second = await orchestrator.process_item(owner_id, settled, account_id=account_id)
        db_session.expire_all()

        transaction = await TransactionRepository(db_session).get_by_external_id(owner_id, "t-1")
        assert first.is_new is True
        assert second.is_new is False
        assert second.transaction_id == first.transaction_id
        assert transaction.id == first.transaction_id
        assert transaction.provider_status == "SUCCESSFUL"
        assert transaction.provider_financial_transaction_id == "fin-9"
        assert transaction.direction == "income"
        assert transaction.category.name == "Salary"
        assert transaction.confidence == 95
        assert transaction.merchant_name != "KFC"
        assert await TransactionRepository(db_session).count_by_owner(owner_id) == 1


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_newest_first(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        first = await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(owner_id)
        second = await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(owner_id)

        history = await SyncOrchestrator(db_session, provider=StubProvider()).get_sync_history(owner_id)

        assert history.ok
        assert [entry.id for entry in history.data] == [second.data.sync_log_id, first.data.sync_log_id]
        assert (await SyncOrchestrator(db_session, provider=StubProvider()).get_sync_history(uuid4())).data == []

    @pytest.mark.asyncio
    async def test_list_synced_transactions(self, db_session: AsyncSession, owner_id):
        await _link(db_session, owner_id)
        await SyncOrchestrator(db_session, provider=SandboxProvider()).sync_transactions(owner_id)
        orchestrator = SyncOrchestrator(db_session, provider=StubProvider())

        listed = await orchestrator.list_synced_transactions(owner_id, skip=0, limit=3)

        assert listed.ok
        assert len(listed.data) == 3
        assert all(t.provider_external_id.startswith("mock-") for t in listed.data)
        assert all(t.category is not None for t in listed.data)
