"""
BasketAssemblyRun model for the basket assembly audit trail.

One row is written inside every successful assembly transaction, so the
row exists exactly when the stock decrements and the counter increment
were committed.
"""

import json
from typing import List

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, Text

from .base import BaseModel
from asa_panel.utils.datetime_utils import utc_now


class BasketAssemblyRun(BaseModel):
    """
    Record of one assembly of N baskets.

    Attributes:
        quantity_assembled: Baskets produced by this run (> 0)
        counter_after: Assembled-basket counter once the run committed
        assembled_at: When the run happened
        consumption_data: JSON list of {stock_item_id, quantity} consumed
        notes: Optional operator notes
    """

    __tablename__ = "basket_assembly_runs"

    quantity_assembled = Column(Integer, nullable=False)
    counter_after = Column(Integer, nullable=False)
    assembled_at = Column(DateTime, nullable=False, default=utc_now)
    consumption_data = Column(Text, nullable=False, default="[]")
    notes = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_basket_assembly_run_assembled_at", "assembled_at"),
        CheckConstraint(
            "quantity_assembled > 0", name="ck_basket_assembly_run_quantity_positive"
        ),
        CheckConstraint("counter_after >= 0", name="ck_basket_assembly_run_counter_non_negative"),
    )

    def get_consumption(self) -> List[dict]:
        """Parse and return consumption_data JSON."""
        if not self.consumption_data:
            return []
        return json.loads(self.consumption_data)

    def __repr__(self) -> str:
        return (
            f"BasketAssemblyRun(id={self.id}, quantity_assembled={self.quantity_assembled}, "
            f"counter_after={self.counter_after})"
        )
