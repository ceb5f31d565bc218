"""Account registry: linking, listing and deactivating provider accounts."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.config import settings
from ledgersync.core.exceptions import AccountAlreadyLinkedError, AccountNotFoundError
from ledgersync.core.result import service_operation
from ledgersync.core.validators import (
    ACCOUNT_NAME_MAX_LENGTH,
    ACCOUNT_NAME_MIN_LENGTH,
    is_valid_account_name,
    is_valid_reference,
    normalize_reference,
    require_owner,
    validate_input,
)
from ledgersync.models.linked_account import AccountKind, LinkedAccount
from ledgersync.repositories.account import LinkedAccountRepository
from ledgersync.schemas.account import LinkedAccountResponse

logger = logging.getLogger(__name__)


def _non_blank(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


class AccountService:
    """Service layer for linked-account operations.

    Every public method returns a ``ServiceResult``; domain and validation
    errors are reported in its ``error`` field.
    """

    def __init__(self, db: AsyncSession, provider_source: str | None = None):
        """Initialize account service with database session.

        Args:
            db: Database session
            provider_source: Provider scope (defaults to settings.provider_source)
        """
        self.db = db
        self.provider_source = provider_source or settings.provider_source
        self.account_repo = LinkedAccountRepository(db)

    @service_operation("LINK_ACCOUNT_ERROR")
    async def link_account(
        self,
        owner_id: UUID | None,
        reference: str,
        display_name: str,
        kind: AccountKind = AccountKind.MOBILE_MONEY,
    ) -> LinkedAccountResponse:
        """Link a provider account for the owner.

        Args:
            owner_id: Authenticated owner
            reference: Provider reference (MSISDN); spaces and dashes are stripped
            display_name: Account name, 2-50 characters
            kind: Account kind

        Returns:
            The created account

        Raises (reported in the result envelope):
            ValidationError: Malformed reference or name
            AccountAlreadyLinkedError: An active link already exists
        """
        owner_id = require_owner(owner_id)
        validate_input(
            "reference",
            reference,
            _non_blank,
            "Account reference is required",
            error_code="VALIDATION_REQUIRED_FIELD",
        )
        reference = normalize_reference(reference)
        validate_input("reference", reference, is_valid_reference, "Invalid account reference format")
        validate_input(
            "display_name",
            display_name,
            lambda v: isinstance(v, str) and is_valid_account_name(v),
            f"Account name must be between {ACCOUNT_NAME_MIN_LENGTH} and "
            f"{ACCOUNT_NAME_MAX_LENGTH} characters",
            error_code="VALIDATION_INVALID_RANGE",
        )

        existing = await self.account_repo.get_active_by_reference(
            owner_id, reference, self.provider_source
        )
        if existing is not None:
            raise AccountAlreadyLinkedError(details={"account_id": str(existing.id)})

        account = LinkedAccount(
            owner_id=owner_id,
            reference=reference,
            display_name=display_name.strip(),
            kind=AccountKind(kind).value,
            provider_source=self.provider_source,
            is_active=True,
        )
        try:
            account = await self.account_repo.create(account)
        except IntegrityError as exc:
            # Lost a race against a concurrent link of the same reference.
            await self.db.rollback()
            raise AccountAlreadyLinkedError() from exc

        logger.info(
            "Account linked",
            extra={"account_id": str(account.id), "provider": self.provider_source},
        )
        return LinkedAccountResponse.model_validate(account)

    @service_operation("FETCH_ACCOUNTS_ERROR")
    async def list_accounts(
        self, owner_id: UUID | None, provider_source: str | None = None
    ) -> list[LinkedAccountResponse]:
        """All accounts (active and inactive) for the scope, newest first."""
        owner_id = require_owner(owner_id)
        accounts = await self.account_repo.get_by_owner(
            owner_id, provider_source or self.provider_source
        )
        return [LinkedAccountResponse.model_validate(a) for a in accounts]

    @service_operation("FETCH_ACCOUNTS_ERROR")
    async def get_active_accounts(
        self, owner_id: UUID | None, provider_source: str | None = None
    ) -> list[LinkedAccountResponse]:
        """Active accounts for the scope, most recently linked first."""
        owner_id = require_owner(owner_id)
        accounts = await self.active_accounts(owner_id, provider_source)
        return [LinkedAccountResponse.model_validate(a) for a in accounts]

    async def active_accounts(
        self, owner_id: UUID, provider_source: str | None = None
    ) -> list[LinkedAccount]:
        """Unwrapped lookup used inside a sync run."""
        return await self.account_repo.get_by_owner(
            owner_id, provider_source or self.provider_source, active_only=True
        )

    @service_operation("DEACTIVATE_ACCOUNT_ERROR")
    async def deactivate_account(
        self, owner_id: UUID | None, account_id: UUID
    ) -> LinkedAccountResponse:
        """Soft-deactivate an account.

        Deactivating an already inactive account succeeds without change.

        Raises (reported in the result envelope):
            AccountNotFoundError: No such account for this owner and provider
        """
        owner_id = require_owner(owner_id)
        account = await self.account_repo.get_for_owner(owner_id, account_id, self.provider_source)
        if account is None:
            raise AccountNotFoundError(details={"account_id": str(account_id)})

        if account.is_active:
            account = await self.account_repo.apply(account, {"is_active": False})
            logger.info("Account deactivated", extra={"account_id": str(account.id)})
        return LinkedAccountResponse.model_validate(account)
