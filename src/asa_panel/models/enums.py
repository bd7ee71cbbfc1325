"""
Enumerations for pantry stock.

This module contains the closed sets used by stock items:
- StockUnit: Unit of measure a quantity is counted in
- StockCategory: Classification used for reporting and filtering
"""

from enum import Enum


class StockUnit(str, Enum):
    """
    Unit of measure for a stock item.

    Values:
        KILOGRAM: Mass, counted in kilograms
        UNIT: Discrete count of individual items
        LITER: Volume, counted in liters
        PACKAGE: Sealed packages of any size
    """

    KILOGRAM = "kg"
    UNIT = "unit"
    LITER = "liter"
    PACKAGE = "package"


class StockCategory(str, Enum):
    """
    Stock classification.

    Categories only drive reporting and filtering; basket assembly
    ignores them.

    Values:
        FOOD: Food staples
        HYGIENE: Hygiene and cleaning products
        CLOTHING: Donated clothing
        OTHER: Anything else
    """

    FOOD = "food"
    HYGIENE = "hygiene"
    CLOTHING = "clothing"
    OTHER = "other"
