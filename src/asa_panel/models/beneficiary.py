"""
Beneficiary model for the families served by the organization.

This module contains:
- Beneficiary: A household that receives basic baskets
"""

import json
from typing import List

from sqlalchemy import Column, Date, Index, Integer, String, Text

from .base import BaseModel


class Beneficiary(BaseModel):
    """
    Beneficiary model representing a household receiving baskets.

    Attributes:
        name: Name of the responsible person or household
        family_size: Number of people in the household (>= 1)
        address: Optional address
        phone: Optional phone number
        notes: Additional notes
        last_basket_date: Date of the most recent delivery
        history: JSON list of {"date": "YYYY-MM-DD", "note": str | None}
    """

    __tablename__ = "beneficiaries"

    name = Column(String(200), nullable=False, index=True)
    family_size = Column(Integer, nullable=False, default=1)
    address = Column(Text, nullable=True)
    phone = Column(String(40), nullable=True)
    notes = Column(Text, nullable=True)
    last_basket_date = Column(Date, nullable=True)
    history = Column(Text, nullable=False, default="[]")

    __table_args__ = (Index("idx_beneficiary_last_basket", "last_basket_date"),)

    def get_history(self) -> List[dict]:
        """Parse and return the delivery history."""
        if not self.history:
            return []
        return json.loads(self.history)

    def __repr__(self) -> str:
        """String representation of beneficiary."""
        return f"Beneficiary(id={self.id}, name='{self.name}', family_size={self.family_size})"
