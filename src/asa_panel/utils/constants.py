"""
Constants for the ASA donation panel.

This module defines system-wide constants including:
- Application metadata
- Setting keys used in the key/value settings table
- Field limits
- Error message strings shared by validators and services
"""

from decimal import Decimal

# ============================================================================
# Application Metadata
# ============================================================================

DATABASE_FILENAME = "asa_panel.db"

# ============================================================================
# Settings Keys
# ============================================================================

# Recipe blob for the basic basket
SETTING_BASKET_CONFIG = "basket_config"

# Cumulative number of baskets assembled to date
SETTING_ASSEMBLED_BASKETS = "assembled_baskets"

DEFAULT_BASKET_NAME = "Cesta Básica"

# ============================================================================
# Stock Defaults
# ============================================================================

DEFAULT_MIN_THRESHOLD = Decimal("10")

# Scale used by the Numeric quantity columns
QUANTITY_SCALE = 3

# ============================================================================
# Field Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_TITLE_LENGTH = 200
MAX_PHONE_LENGTH = 40
MAX_NOTES_LENGTH = 2000

MAX_QUANTITY = Decimal("1000000")
MIN_FAMILY_SIZE = 1

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Must be a valid number"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
ERROR_INVALID_UNIT = "Invalid unit"
ERROR_INVALID_CATEGORY = "Invalid category"
ERROR_INVALID_DATE = "Must be a date in YYYY-MM-DD format"
