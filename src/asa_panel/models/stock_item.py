"""
StockItem model for the pantry ledger.

Each row is one tracked product and the amount currently on hand.
Quantities are exact decimals so per-basket division never suffers
from binary rounding.
"""

from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    Index,
    Numeric,
    String,
    Text,
    Enum as SQLEnum,
)

from .base import BaseModel
from .enums import StockCategory, StockUnit


class StockItem(BaseModel):
    """
    StockItem model representing a pantry product on hand.

    Attributes:
        name: Display label (e.g., "Arroz", "Feijão")
        quantity: Amount on hand, never negative
        unit: Unit of measure (StockUnit)
        category: Reporting classification (StockCategory)
        min_threshold: Quantity at or below which the item is low on stock
        notes: Optional free text
    """

    __tablename__ = "stock_items"

    name = Column(String(200), nullable=False, index=True)
    quantity = Column(Numeric(12, 3), nullable=False, default=Decimal("0"))
    unit = Column(SQLEnum(StockUnit), nullable=False)
    category = Column(SQLEnum(StockCategory), nullable=False, default=StockCategory.FOOD)
    min_threshold = Column(Numeric(12, 3), nullable=False, default=Decimal("10"))
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_stock_item_category", "category"),
        CheckConstraint("quantity >= 0", name="ck_stock_item_quantity_non_negative"),
        CheckConstraint("min_threshold >= 0", name="ck_stock_item_min_threshold_non_negative"),
    )

    @property
    def is_low_stock(self) -> bool:
        """True when quantity is at or below min_threshold (display only)."""
        return Decimal(self.quantity or 0) <= Decimal(self.min_threshold or 0)

    def __repr__(self) -> str:
        """String representation of stock item."""
        unit = self.unit.value if self.unit is not None else None
        return (
            f"StockItem(id={self.id}, name='{self.name}', "
            f"quantity={self.quantity}, unit='{unit}')"
        )
