"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .enums import StockCategory, StockUnit
from .stock_item import StockItem
from .setting import Setting
from .basket_assembly_run import BasketAssemblyRun
from .beneficiary import Beneficiary
from .delivery_event import DeliveryEvent

__all__ = [
    "Base",
    "BaseModel",
    # Pantry ledger
    "StockItem",
    "StockUnit",
    "StockCategory",
    # Process-wide settings (recipe blob, assembled counter)
    "Setting",
    "BasketAssemblyRun",
    # Registry
    "Beneficiary",
    "DeliveryEvent",
]
