"""Get-or-create of category rows from classifier output."""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgersync.models.category import Category, normalize_category_name
from ledgersync.repositories.category import CategoryRepository

logger = logging.getLogger(__name__)

DEFAULT_ICON = "circle"

CATEGORY_ICONS: dict[str, str] = {
    "food_dining": "restaurant",
    "transportation": "car",
    "utilities": "lightbulb",
    "shopping": "shopping-bag",
    "healthcare": "heart",
    "education": "book",
    "entertainment": "play",
    "transfer_sent": "send",
    "transfer_received": "download",
    "salary": "briefcase",
    "business_income": "trending-up",
    "investment_income": "pie-chart",
    "freelance": "user",
    "subscription": "repeat",
    "banking_fees": "credit-card",
}


def display_name_for(category_id: str) -> str:
    """snake_case id to Title Case display name (``food_dining`` -> ``Food Dining``)."""
    return " ".join(part.capitalize() for part in category_id.split("_") if part)


class CategoryResolver:
    """Resolve classifier category ids to owner-visible category rows."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.category_repo = CategoryRepository(db)

    async def ensure_category(self, owner_id: UUID, category_id: str, direction: str) -> UUID:
        """Return the id of a matching category, creating one if needed.

        Owner-scoped matches win over system ones. A concurrent create of the
        same normalized name is resolved by returning the row that won.

        Args:
            owner_id: Owner the category is created for on a miss
            category_id: Classifier category id, e.g. ``food_dining``
            direction: ``income`` or ``expense``

        Returns:
            Category row id
        """
        term = category_id.replace("_", " ")
        matches = await self.category_repo.search_by_name(owner_id, term)
        if matches:
            return matches[0].id

        name = display_name_for(category_id)
        normalized = normalize_category_name(name)
        category = Category(
            owner_id=owner_id,
            name=name,
            normalized_name=normalized,
            icon_name=CATEGORY_ICONS.get(category_id, DEFAULT_ICON),
            direction=direction,
        )
        try:
            category = await self.category_repo.create(category)
        except IntegrityError:
            await self.db.rollback()
            existing = await self.category_repo.get_by_normalized_name(owner_id, normalized)
            if existing is None:
                raise
            return existing.id

        logger.info("Category created", extra={"category_id": category_id})
        return category.id
