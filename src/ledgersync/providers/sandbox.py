"""Deterministic placeholder provider.

Produces the same page on every call so repeated syncs converge on the same
rows. Used when ``PROVIDER_MODE=sandbox`` (the default) and in tests.
"""

from __future__ import annotations

from ledgersync.providers.base import PayerParty, ProviderAdapter, RawProviderTransaction

SANDBOX_TEMPLATES: tuple[tuple[str, str, str], ...] = (
    ("25.50", "Lunch at KFC Accra Mall", "Food purchase"),
    ("15.00", "Uber ride to work", "Transportation"),
    ("100.00", "ECG electricity bill payment", "Utility bill"),
    ("2000.00", "Monthly salary deposit", "Salary payment"),
    ("50.00", "Shopping at Shoprite", "Grocery shopping"),
    ("8.50", "Mobile data bundle", "Telecom services"),
    ("200.00", "Transfer to savings account", "Personal transfer"),
    ("35.00", "Pharmacy - medication", "Healthcare"),
    ("120.00", "Fuel station payment", "Transportation"),
    ("75.00", "Restaurant dinner", "Dining out"),
)


class SandboxProvider(ProviderAdapter):
    """Placeholder adapter returning a fixed page per reference."""

    def __init__(
        self,
        source: str = "mtn_momo",
        per_reference: int = 5,
        currency: str = "GHS",
    ):
        self.source = source
        self.per_reference = max(0, min(per_reference, len(SANDBOX_TEMPLATES)))
        self.currency = currency
        self.initialized = False

    async def initialize_session(self) -> None:
        self.initialized = True

    async def fetch_candidates(
        self, references: list[str], limit: int
    ) -> list[RawProviderTransaction]:
        page: list[RawProviderTransaction] = []
        for reference in references:
            for index, (amount, message, note) in enumerate(
                SANDBOX_TEMPLATES[: self.per_reference], start=1
            ):
                if len(page) >= limit:
                    return page
                page.append(
                    RawProviderTransaction(
                        external_id=f"mock-{reference}-{index:03d}",
                        amount=amount,
                        currency=self.currency,
                        status="SUCCESSFUL",
                        payer=PayerParty(party_id_type="MSISDN", party_id=reference),
                        payer_message=message,
                        payee_note=note,
                        financial_transaction_id=f"mock-fin-{reference}-{index:03d}",
                    )
                )
        return page
