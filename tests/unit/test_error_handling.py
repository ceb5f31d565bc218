"""Unit tests for the error catalog, result envelope, handlers and PII filtering."""

import json
import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from ledgersync.api.envelope import to_response
from ledgersync.api.middleware.error_handler import (
    handle_domain_error,
    handle_generic_error,
    handle_integrity_error,
    handle_validation_error,
)
from ledgersync.api.middleware.logging import JSONLogFormatter, filter_pii
from ledgersync.core.errors import ERROR_CATALOG, get_error, get_http_status, get_user_message
from ledgersync.core.exceptions import (
    AccountNotFoundError,
    LedgerSyncError,
    NoActiveAccountError,
    ProviderUnavailableError,
    ValidationError,
)
from ledgersync.core.result import ServiceResult, service_operation


def _request(path="/api/v1/sync", method="POST"):
    request = Mock(spec=Request)
    request.url.path = path
    request.method = method
    return request


def _body(response: JSONResponse) -> dict:
    return json.loads(response.body.decode())


class TestErrorCatalog:
    """Test the error code catalog."""

    def test_all_entries_have_required_fields(self):
        for code, definition in ERROR_CATALOG.items():
            assert definition["code"] == code
            for key in ("message", "user_message", "suggestion", "retry_allowed", "http_status"):
                assert key in definition, f"{code} missing {key}"

    def test_unknown_code_keeps_code(self):
        definition = get_error("LINK_ACCOUNT_ERROR")

        assert definition["code"] == "LINK_ACCOUNT_ERROR"
        assert definition["http_status"] == 500

    @pytest.mark.parametrize(
        "code,status",
        [
            ("VALIDATION_REQUIRED_FIELD", 400),
            ("AUTH_USER_NOT_FOUND", 401),
            ("ACCOUNT_NOT_FOUND", 404),
            ("ACCOUNT_ALREADY_LINKED", 409),
            ("NO_ACTIVE_ACCOUNT", 404),
            ("PROVIDER_UNAVAILABLE", 503),
            ("SYNC_FAILED", 500),
        ],
    )
    def test_http_status(self, code, status):
        assert get_http_status(code) == status

    def test_user_message(self):
        assert get_user_message("NO_ACTIVE_ACCOUNT") == "No active accounts found."


class TestExceptions:
    def test_defaults_come_from_catalog(self):
        exc = NoActiveAccountError()

        assert exc.error_code == "NO_ACTIVE_ACCOUNT"
        assert exc.message == "No active accounts found."
        assert exc.http_status == 404
        assert str(exc) == exc.message

    def test_overrides(self):
        exc = ProviderUnavailableError("Token rejected", details={"provider": "mtn_momo"}, http_status=502)

        assert exc.message == "Token rejected"
        assert exc.details == {"provider": "mtn_momo"}
        assert exc.http_status == 502

    def test_validation_error_carries_field(self):
        exc = ValidationError("reference", "Invalid account reference format", "12")

        assert isinstance(exc, LedgerSyncError)
        assert exc.error_code == "VALIDATION_INVALID_FORMAT"
        assert exc.field == "reference"
        assert exc.value == "12"


class _Service:
    def __init__(self, db=None):
        self.db = db

    @service_operation("FETCH_THINGS_ERROR")
    async def ok(self):
        return [1, 2]

    @service_operation("FETCH_THINGS_ERROR")
    async def missing(self):
        raise AccountNotFoundError()

    @service_operation("FETCH_THINGS_ERROR")
    async def invalid(self):
        raise ValidationError("name", "Name is required", error_code="VALIDATION_REQUIRED_FIELD")

    @service_operation("FETCH_THINGS_ERROR")
    async def boom(self):
        raise RuntimeError("SELECT * FROM secrets")


class TestServiceOperation:
    """Test the result-envelope decorator."""

    @pytest.mark.asyncio
    async def test_success(self):
        result = await _Service().ok()

        assert result.ok
        assert result.data == [1, 2]
        assert result.error is None

    @pytest.mark.asyncio
    async def test_domain_error_becomes_failure(self):
        db = Mock()
        db.rollback = AsyncMock()

        result = await _Service(db).missing()

        assert not result.ok
        assert result.data is None
        assert result.error.code == "ACCOUNT_NOT_FOUND"
        assert result.error.message == "Account not found."
        db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_validation_error_becomes_failure(self):
        result = await _Service().invalid()

        assert result.error.code == "VALIDATION_REQUIRED_FIELD"
        assert result.error.message == "Name is required"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_generic(self):
        with patch("ledgersync.core.result.settings") as mock_settings:
            mock_settings.debug = False
            result = await _Service().boom()

        assert result.error.code == "FETCH_THINGS_ERROR"
        assert result.error.message == "An unexpected error occurred."
        assert "secrets" not in result.error.message

    @pytest.mark.asyncio
    async def test_unexpected_error_detail_in_debug(self):
        with patch("ledgersync.core.result.settings") as mock_settings:
            mock_settings.debug = True
            result = await _Service().boom()

        assert result.error.message == "SELECT * FROM secrets"

    @pytest.mark.asyncio
    async def test_failed_rollback_is_logged_not_raised(self):
        db = Mock()
        db.rollback = AsyncMock(side_effect=OperationalError("ROLLBACK", {}, Exception("gone")))

        result = await _Service(db).missing()

        assert result.error.code == "ACCOUNT_NOT_FOUND"


class TestEnvelopeResponse:
    def test_success_response(self):
        response = to_response(ServiceResult.success({"total": 3}))

        assert response.status_code == 200
        assert _body(response) == {"data": {"total": 3}, "error": None}

    def test_failure_status_from_catalog(self):
        response = to_response(ServiceResult.failure("NO_ACTIVE_ACCOUNT", "No active accounts found."))

        assert response.status_code == 404
        assert _body(response) == {
            "data": None,
            "error": {"code": "NO_ACTIVE_ACCOUNT", "message": "No active accounts found."},
        }


class TestHandlers:
    """Test exception handlers return envelope bodies."""

    @pytest.mark.asyncio
    async def test_domain_error(self):
        response = await handle_domain_error(_request(), ProviderUnavailableError())

        assert response.status_code == 503
        content = _body(response)
        assert content["data"] is None
        assert content["error"]["code"] == "PROVIDER_UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_validation_error(self):
        exc = RequestValidationError(
            errors=[
                {"loc": ("query", "limit"), "msg": "value must be <= 100", "type": "value_error"},
                {"loc": ("body", "sync_type"), "msg": "invalid choice", "type": "value_error"},
            ]
        )

        response = await handle_validation_error(_request("/api/v1/sync/history", "GET"), exc)

        assert response.status_code == 400
        content = _body(response)
        assert content["error"]["code"] == "VALIDATION_INVALID_FORMAT"
        assert "query.limit" in content["error"]["message"]
        assert "body.sync_type" in content["error"]["message"]

    @pytest.mark.asyncio
    async def test_integrity_error_unique(self):
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: transactions"))

        response = await handle_integrity_error(_request(), exc)

        assert response.status_code == 409
        assert _body(response)["error"]["code"] == "DB_002"

    @pytest.mark.asyncio
    async def test_integrity_error_other(self):
        exc = IntegrityError("INSERT", {}, Exception("NOT NULL constraint failed"))

        response = await handle_integrity_error(_request(), exc)

        assert response.status_code == 500
        assert _body(response)["error"]["code"] == "DB_001"

    @pytest.mark.asyncio
    async def test_generic_error_hides_details(self):
        response = await handle_generic_error(_request(), RuntimeError("password=hunter2"))

        assert response.status_code == 500
        content = _body(response)
        assert content["error"]["code"] == "INTERNAL_ERROR"
        assert "hunter2" not in json.dumps(content)


class TestPIIFiltering:
    """Test PII masking in log output."""

    @pytest.mark.parametrize(
        "text",
        [
            "Payment from 0244123456 received",
            "Payment from +233244123456 received",
            "Payment from +233 24 412 3456 received",
            "Payment from 024-412-3456 received",
        ],
    )
    def test_masks_msisdn(self, text):
        filtered = filter_pii(text)

        assert "[PHONE]" in filtered
        assert "412" not in filtered

    def test_masks_email(self):
        assert filter_pii("Contact kofi@example.com") == "Contact [EMAIL]"

    def test_leaves_amounts_alone(self):
        text = "Synced 25 transactions totalling 1500.00"
        assert filter_pii(text) == text

    def test_empty(self):
        assert filter_pii("") == ""

    def test_json_formatter_masks_and_copies_extras(self):
        record = logging.LogRecord(
            name="ledgersync.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Linked 0244123456",
            args=(),
            exc_info=None,
        )
        record.error_code = "ACCOUNT_ALREADY_LINKED"

        payload = json.loads(JSONLogFormatter().format(record))

        assert payload["message"] == "Linked [PHONE]"
        assert payload["error_code"] == "ACCOUNT_ALREADY_LINKED"
        assert payload["level"] == "INFO"
