"""
Basket Configuration Service - the basic-basket recipe and the assembled counter.

This module provides:
- BasketConfiguration / BasketRecipeLine: the in-memory recipe with
  add/update/remove/rename edits (no side effects on inventory)
- load/save of the recipe as a single blob in the settings table
  (a later save overwrites an earlier one; no history is kept)
- Recipe edit helpers that load, edit and save in one transaction
- The process-wide assembled-basket counter

Session Management Pattern:
- All public functions accept session=None
- If session provided, use it directly
- If session is None, create a new session via session_scope()
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from asa_panel.models import Setting, StockItem
from asa_panel.services.database import session_scope
from asa_panel.services.exceptions import (
    DatabaseError,
    DuplicateLineError,
    InvalidQuantityError,
    LineNotFoundError,
    StaleConfigurationError,
    StockItemNotFound,
    ValidationError,
)
from asa_panel.services.inventory_service import ledger_lock, to_quantity
from asa_panel.services.logging_utils import get_service_logger, log_operation
from asa_panel.utils.constants import (
    DEFAULT_BASKET_NAME,
    MAX_NAME_LENGTH,
    SETTING_ASSEMBLED_BASKETS,
    SETTING_BASKET_CONFIG,
)

logger = get_service_logger(__name__)


# =============================================================================
# Recipe Data Structures
# =============================================================================


@dataclass
class BasketRecipeLine:
    """One stock item and the amount a single basket consumes."""

    stock_item_id: int
    quantity_required: Decimal


@dataclass
class BasketConfiguration:
    """
    Named recipe for one basic basket.

    Lines are unique by stock_item_id. ``version`` is the stored version this
    configuration was loaded from (None if never saved); it does not take
    part in equality.
    """

    name: str = DEFAULT_BASKET_NAME
    items: List[BasketRecipeLine] = field(default_factory=list)
    version: Optional[int] = field(default=None, compare=False)

    def get_line(self, stock_item_id: int) -> Optional[BasketRecipeLine]:
        for line in self.items:
            if line.stock_item_id == stock_item_id:
                return line
        return None

    def add_line(self, stock_item_id: int, quantity_required: Any) -> "BasketConfiguration":
        """
        Add a recipe line.

        Raises:
            DuplicateLineError: If the stock item already has a line
            InvalidQuantityError: If quantity_required is not a valid ledger quantity
        """
        quantity = to_quantity(quantity_required, "quantity_required")
        if self.get_line(stock_item_id) is not None:
            raise DuplicateLineError(stock_item_id)
        self.items.append(BasketRecipeLine(stock_item_id, quantity))
        return self

    def update_line_quantity(
        self, stock_item_id: int, quantity_required: Any
    ) -> "BasketConfiguration":
        """
        Change the per-basket amount of an existing line.

        Raises:
            LineNotFoundError: If the stock item has no line
            InvalidQuantityError: If quantity_required is not a valid ledger quantity
        """
        quantity = to_quantity(quantity_required, "quantity_required")
        line = self.get_line(stock_item_id)
        if line is None:
            raise LineNotFoundError(stock_item_id)
        line.quantity_required = quantity
        return self

    def remove_line(self, stock_item_id: int) -> "BasketConfiguration":
        """
        Remove a recipe line.

        Removing a line that is not there is an error, not a no-op.

        Raises:
            LineNotFoundError: If the stock item has no line
        """
        line = self.get_line(stock_item_id)
        if line is None:
            raise LineNotFoundError(stock_item_id)
        self.items.remove(line)
        return self

    def rename(self, name: str) -> "BasketConfiguration":
        """
        Rename the basket.

        Raises:
            ValidationError: If name is blank or too long
        """
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError(["Name: This field is required"])
        if len(cleaned) > MAX_NAME_LENGTH:
            raise ValidationError([f"Name: Must be {MAX_NAME_LENGTH} characters or less"])
        self.name = cleaned
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the stored blob format (quantities as strings)."""
        return {
            "name": self.name,
            "items": [
                {
                    "stock_item_id": line.stock_item_id,
                    "quantity_required": str(line.quantity_required),
                }
                for line in self.items
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], version: Optional[int] = None) -> "BasketConfiguration":
        """
        Build a configuration from a stored blob.

        Lines go through add_line, so a corrupt blob with duplicates or
        negative amounts raises instead of loading.
        """
        config = cls(name=data.get("name") or DEFAULT_BASKET_NAME, version=version)
        for raw in data.get("items", []):
            config.add_line(int(raw["stock_item_id"]), raw["quantity_required"])
        return config


# =============================================================================
# Persistence
# =============================================================================


def _get_setting(key: str, session: Session, for_update: bool = False) -> Optional[Setting]:
    query = session.query(Setting).filter(Setting.key == key)
    if for_update:
        query = query.with_for_update()
    return query.first()


def load_basket_configuration(session: Optional[Session] = None) -> BasketConfiguration:
    """
    Load the stored basket recipe.

    Returns:
        The stored BasketConfiguration, or an empty default recipe if none
        has been saved yet

    Raises:
        DatabaseError: If database operation fails
    """
    try:
        if session is not None:
            return _load_basket_configuration_impl(session)
        with session_scope() as session:
            return _load_basket_configuration_impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to load basket configuration: {str(e)}", e)


def _load_basket_configuration_impl(session: Session) -> BasketConfiguration:
    setting = _get_setting(SETTING_BASKET_CONFIG, session)
    if setting is None:
        return BasketConfiguration()
    return BasketConfiguration.from_dict(setting.get_value(), version=setting.version)


def save_basket_configuration(
    config: BasketConfiguration,
    expected_version: Optional[int] = None,
    session: Optional[Session] = None,
) -> int:
    """
    Save the basket recipe, overwriting the stored one.

    Args:
        config: Recipe to store; its ``version`` is updated on success
        expected_version: If given, the save only succeeds when the stored
            version still matches (use config.version from load)
        session: Optional database session

    Returns:
        The new stored version

    Raises:
        StaleConfigurationError: If expected_version no longer matches
        DatabaseError: If database operation fails
    """
    try:
        if session is not None:
            return _save_basket_configuration_impl(config, expected_version, session)
        with session_scope() as session:
            return _save_basket_configuration_impl(config, expected_version, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to save basket configuration: {str(e)}", e)


def _save_basket_configuration_impl(
    config: BasketConfiguration,
    expected_version: Optional[int],
    session: Session,
) -> int:
    setting = _get_setting(SETTING_BASKET_CONFIG, session, for_update=True)
    current_version = setting.version if setting is not None else 0

    if expected_version is not None and expected_version != current_version:
        raise StaleConfigurationError(expected_version, current_version)

    if setting is None:
        setting = Setting(key=SETTING_BASKET_CONFIG, version=0)
        session.add(setting)
    setting.set_value(config.to_dict())
    session.flush()

    config.version = setting.version
    log_operation(
        logger,
        operation="save_basket_configuration",
        outcome="success",
        version=setting.version,
        line_count=len(config.items),
    )
    return setting.version


def _edit_stored_configuration(edit, session: Optional[Session]) -> BasketConfiguration:
    """Load the recipe, apply ``edit(config, session)`` and save, in one transaction."""

    def _impl(sess: Session) -> BasketConfiguration:
        config = _load_basket_configuration_impl(sess)
        edit(config, sess)
        _save_basket_configuration_impl(config, config.version or 0, sess)
        return config

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as session:
            return _impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update basket configuration: {str(e)}", e)


def add_recipe_line(
    stock_item_id: int, quantity_required: Any, session: Optional[Session] = None
) -> BasketConfiguration:
    """
    Add a line to the stored recipe.

    Raises:
        StockItemNotFound: If the stock item does not exist
        DuplicateLineError: If the item already has a line
        InvalidQuantityError: If quantity_required is negative or not a number
    """

    def _edit(config: BasketConfiguration, sess: Session) -> None:
        exists = sess.query(StockItem.id).filter(StockItem.id == stock_item_id).first()
        if exists is None:
            raise StockItemNotFound(stock_item_id)
        config.add_line(stock_item_id, quantity_required)

    return _edit_stored_configuration(_edit, session)


def update_recipe_line(
    stock_item_id: int, quantity_required: Any, session: Optional[Session] = None
) -> BasketConfiguration:
    """
    Change the per-basket amount of a stored recipe line.

    Raises:
        LineNotFoundError: If the item has no line
        InvalidQuantityError: If quantity_required is negative or not a number
    """
    return _edit_stored_configuration(
        lambda config, _sess: config.update_line_quantity(stock_item_id, quantity_required),
        session,
    )


def remove_recipe_line(
    stock_item_id: int, session: Optional[Session] = None
) -> BasketConfiguration:
    """
    Remove a line from the stored recipe.

    Raises:
        LineNotFoundError: If the item has no line
    """
    return _edit_stored_configuration(
        lambda config, _sess: config.remove_line(stock_item_id), session
    )


def rename_basket(name: str, session: Optional[Session] = None) -> BasketConfiguration:
    """Rename the stored recipe."""
    return _edit_stored_configuration(lambda config, _sess: config.rename(name), session)


# =============================================================================
# Assembled Basket Counter
# =============================================================================


def _validate_count(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidQuantityError(field_name, value, "must be a whole number")
    if value < 0:
        raise InvalidQuantityError(field_name, value, "must not be negative")
    return value


def get_assembled_count(session: Optional[Session] = None) -> int:
    """
    Get the cumulative number of baskets assembled.

    Returns:
        Counter value (0 if nothing was ever assembled)
    """
    try:
        if session is not None:
            return _get_assembled_count_impl(session)
        with session_scope() as session:
            return _get_assembled_count_impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to read assembled basket count: {str(e)}", e)


def _get_assembled_count_impl(session: Session) -> int:
    setting = _get_setting(SETTING_ASSEMBLED_BASKETS, session)
    if setting is None:
        return 0
    return int(setting.get_value())


def set_assembled_count(count: int, session: Optional[Session] = None) -> int:
    """
    Override the assembled-basket counter (admin correction).

    Args:
        count: New counter value, a non-negative whole number

    Returns:
        The stored value

    Raises:
        InvalidQuantityError: If count is negative or not an integer
    """
    count = _validate_count(count, "assembled_count")
    try:
        with ledger_lock:
            if session is not None:
                return _write_assembled_count(count, session)
            with session_scope() as session:
                return _write_assembled_count(count, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to set assembled basket count: {str(e)}", e)


def increment_assembled_count(amount: int, session: Session) -> int:
    """
    Add ``amount`` to the counter inside the caller's transaction.

    Used by the assembly transaction; the caller holds ledger_lock and owns
    commit/rollback.

    Returns:
        The new counter value
    """
    amount = _validate_count(amount, "amount")
    setting = _get_setting(SETTING_ASSEMBLED_BASKETS, session, for_update=True)
    current = int(setting.get_value()) if setting is not None else 0
    return _write_assembled_count(current + amount, session, setting)


def _write_assembled_count(
    count: int, session: Session, setting: Optional[Setting] = None
) -> int:
    if setting is None:
        setting = _get_setting(SETTING_ASSEMBLED_BASKETS, session, for_update=True)
    if setting is None:
        setting = Setting(key=SETTING_ASSEMBLED_BASKETS, version=0)
        session.add(setting)
    setting.set_value(count)
    session.flush()
    log_operation(
        logger,
        operation="write_assembled_count",
        outcome="success",
        level=logging.DEBUG,
        assembled_count=count,
    )
    return count
