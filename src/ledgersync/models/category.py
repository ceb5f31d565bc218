"""Category model (system-wide when owner_id is NULL, otherwise owner-scoped)."""
from uuid import UUID

from sqlalchemy import Index, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column

from ledgersync.models.base import BaseModel


def normalize_category_name(name: str) -> str:
    """Lower-case and collapse whitespace; the uniqueness key within a scope."""
    return " ".join((name or "").lower().split())


class Category(BaseModel):
    """Spending or income category."""

    __tablename__ = "categories"

    owner_id: Mapped[UUID | None] = mapped_column(nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(100), nullable=False)
    icon_name: Mapped[str] = mapped_column(String(50), nullable=False, default="circle")
    direction: Mapped[str | None] = mapped_column(String(10), nullable=True)

    __table_args__ = (
        UniqueConstraint("owner_id", "normalized_name", name="uq_categories_owner_normalized_name"),
        # NULL owners never collide in the constraint above.
        Index(
            "uq_categories_system_normalized_name",
            "normalized_name",
            unique=True,
            postgresql_where=text("owner_id IS NULL"),
            sqlite_where=text("owner_id IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name}, owner_id={self.owner_id})>"
