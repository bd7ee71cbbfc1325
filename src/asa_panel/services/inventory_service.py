"""
Inventory Service - the pantry stock ledger.

This module provides functions for:
- Stock item CRUD (create, read, list, manual edit, delete)
- Signed quantity adjustments that never drive stock below zero
- Low-stock reporting

Every mutation of a quantity goes through ``ledger_lock`` and re-reads the
row ``with_for_update()`` inside the same transaction that writes it, so two
simultaneous decrements cannot both pass a check against a stale quantity.

Session Management Pattern:
- All public functions accept session=None
- If session provided, use it directly (caller owns commit/rollback)
- If session is None, create a new session via session_scope()
"""

import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from asa_panel.models import StockCategory, StockItem, StockUnit
from asa_panel.services.database import session_scope
from asa_panel.services.exceptions import (
    DatabaseError,
    InsufficientStockError,
    InvalidQuantityError,
    StockItemNotFound,
    StockShortfall,
    ValidationError,
)
from asa_panel.services.logging_utils import get_service_logger, log_operation
from asa_panel.utils.config import get_config
from asa_panel.utils.constants import MAX_QUANTITY, QUANTITY_SCALE
from asa_panel.utils.validators import (
    parse_quantity,
    sanitize_string,
    validate_stock_item_data,
)

logger = get_service_logger(__name__)

# Serialization point for every quantity change in this process. Re-entrant
# so the assembly transaction can call adjust_stock_quantity while holding it.
ledger_lock = threading.RLock()

QUANTITY_QUANTUM = Decimal(1).scaleb(-QUANTITY_SCALE)


def to_quantity(value: Any, field: str = "quantity", allow_negative: bool = False) -> Decimal:
    """
    Convert ``value`` to a ledger quantity.

    Args:
        value: Number or numeric string
        field: Field name used in the error
        allow_negative: Accept signed values (deltas)

    Returns:
        Decimal at the ledger scale

    Raises:
        InvalidQuantityError: If value is not a finite number, is negative
            when allow_negative is False, exceeds MAX_QUANTITY in magnitude,
            or has more than QUANTITY_SCALE decimal places
    """
    number = parse_quantity(value)
    if number is None:
        raise InvalidQuantityError(field, value, "must be a number")
    if not allow_negative and number < 0:
        raise InvalidQuantityError(field, value, "must not be negative")
    if abs(number) > MAX_QUANTITY:
        raise InvalidQuantityError(field, value, f"must be at most {MAX_QUANTITY}")
    quantity = number.quantize(QUANTITY_QUANTUM)
    if quantity != number:
        raise InvalidQuantityError(
            field, value, f"must have at most {QUANTITY_SCALE} decimal places"
        )
    return quantity


def _fetch_for_update(item_id: int, session: Session) -> StockItem:
    item = (
        session.query(StockItem)
        .filter(StockItem.id == item_id)
        .with_for_update()
        .first()
    )
    if item is None:
        raise StockItemNotFound(item_id)
    return item


# ============================================================================
# Stock Item CRUD
# ============================================================================


def create_stock_item(data: Dict[str, Any], session: Optional[Session] = None) -> StockItem:
    """
    Create a new stock item.

    Args:
        data: Dictionary with keys name, unit, category and optionally
            quantity (default 0), min_threshold (default from config), notes
        session: Optional database session

    Returns:
        Created StockItem

    Raises:
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_stock_item_data(data)
    if not is_valid:
        raise ValidationError(errors)

    try:
        if session is not None:
            return _create_stock_item_impl(data, session)
        with session_scope() as session:
            return _create_stock_item_impl(data, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to create stock item: {str(e)}", e)


def _create_stock_item_impl(data: Dict[str, Any], session: Session) -> StockItem:
    min_threshold = data.get("min_threshold")
    if min_threshold is None:
        min_threshold = get_config().low_stock_default

    item = StockItem(
        name=data["name"].strip(),
        quantity=to_quantity(data.get("quantity", 0)),
        unit=StockUnit(data["unit"]),
        category=StockCategory(data["category"]),
        min_threshold=to_quantity(min_threshold, "min_threshold"),
        notes=sanitize_string(data.get("notes")),
    )
    session.add(item)
    session.flush()

    log_operation(
        logger,
        operation="create_stock_item",
        outcome="success",
        level=logging.DEBUG,
        stock_item_id=item.id,
    )
    return item


def get_stock_item(item_id: int, session: Optional[Session] = None) -> StockItem:
    """
    Get a stock item by ID.

    Args:
        item_id: Stock item ID
        session: Optional database session

    Returns:
        StockItem instance

    Raises:
        StockItemNotFound: If no item has this ID
        DatabaseError: If database operation fails
    """
    try:
        if session is not None:
            return _get_stock_item_impl(item_id, session)
        with session_scope() as session:
            return _get_stock_item_impl(item_id, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get stock item: {str(e)}", e)


def _get_stock_item_impl(item_id: int, session: Session) -> StockItem:
    item = session.query(StockItem).filter(StockItem.id == item_id).first()
    if item is None:
        raise StockItemNotFound(item_id)
    return item


def list_stock_items(
    category: Optional[str] = None,
    name_search: Optional[str] = None,
    session: Optional[Session] = None,
) -> List[StockItem]:
    """
    List stock items ordered by name.

    Args:
        category: Optional StockCategory value to filter by
        name_search: Optional partial, case-insensitive name match
        session: Optional database session

    Returns:
        List of StockItem instances

    Raises:
        ValidationError: If category is not a known category
        DatabaseError: If database operation fails
    """
    category_filter = None
    if category is not None:
        try:
            category_filter = StockCategory(category)
        except ValueError:
            raise ValidationError([f"Category: Invalid category '{category}'"])

    try:
        if session is not None:
            return _list_stock_items_impl(category_filter, name_search, session)
        with session_scope() as session:
            return _list_stock_items_impl(category_filter, name_search, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to list stock items: {str(e)}", e)


def _list_stock_items_impl(
    category: Optional[StockCategory],
    name_search: Optional[str],
    session: Session,
) -> List[StockItem]:
    query = session.query(StockItem)
    if category is not None:
        query = query.filter(StockItem.category == category)
    if name_search:
        query = query.filter(StockItem.name.ilike(f"%{name_search}%"))
    return query.order_by(StockItem.name, StockItem.id).all()


def update_stock_item(
    item_id: int, data: Dict[str, Any], session: Optional[Session] = None
) -> StockItem:
    """
    Manually edit a stock item.

    Any subset of name, unit, category, quantity, min_threshold and notes may
    be given. Setting quantity here is a direct correction (e.g. after a
    stock count); it is still rejected when negative.

    Args:
        item_id: Stock item ID
        data: Fields to change
        session: Optional database session

    Returns:
        Updated StockItem

    Raises:
        StockItemNotFound: If no item has this ID
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_stock_item_data(data, partial=True)
    if not is_valid:
        raise ValidationError(errors)

    try:
        with ledger_lock:
            if session is not None:
                return _update_stock_item_impl(item_id, data, session)
            with session_scope() as session:
                return _update_stock_item_impl(item_id, data, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update stock item: {str(e)}", e)


def _update_stock_item_impl(item_id: int, data: Dict[str, Any], session: Session) -> StockItem:
    item = _fetch_for_update(item_id, session)

    if "name" in data:
        item.name = data["name"].strip()
    if "unit" in data:
        item.unit = StockUnit(data["unit"])
    if "category" in data:
        item.category = StockCategory(data["category"])
    if "quantity" in data:
        item.quantity = to_quantity(data["quantity"])
    if "min_threshold" in data and data["min_threshold"] is not None:
        item.min_threshold = to_quantity(data["min_threshold"], "min_threshold")
    if "notes" in data:
        item.notes = sanitize_string(data["notes"])

    session.flush()
    log_operation(
        logger,
        operation="update_stock_item",
        outcome="success",
        stock_item_id=item.id,
        fields=sorted(data.keys()),
    )
    return item


def delete_stock_item(item_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a stock item.

    Basket recipe lines that reference the item are left in place; the
    feasibility calculation treats them as zero stock.

    Args:
        item_id: Stock item ID
        session: Optional database session

    Returns:
        True when deleted

    Raises:
        StockItemNotFound: If no item has this ID
        DatabaseError: If database operation fails
    """
    try:
        with ledger_lock:
            if session is not None:
                return _delete_stock_item_impl(item_id, session)
            with session_scope() as session:
                return _delete_stock_item_impl(item_id, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete stock item: {str(e)}", e)


def _delete_stock_item_impl(item_id: int, session: Session) -> bool:
    item = _fetch_for_update(item_id, session)
    session.delete(item)
    session.flush()
    log_operation(logger, operation="delete_stock_item", outcome="success", stock_item_id=item_id)
    return True


# ============================================================================
# Quantity Adjustments
# ============================================================================


def adjust_stock_quantity(
    item_id: int, delta: Any, session: Optional[Session] = None
) -> StockItem:
    """
    Add a signed ``delta`` to an item's quantity.

    The quantity is re-read under lock in the same transaction as the write.
    A result below zero is rejected; it is never clamped.

    Args:
        item_id: Stock item ID
        delta: Signed amount (negative to consume, positive to restock)
        session: Optional database session

    Returns:
        The StockItem with its new quantity

    Raises:
        StockItemNotFound: If no item has this ID
        InvalidQuantityError: If delta is not a number, or the result would
            exceed MAX_QUANTITY
        InsufficientStockError: If the result would be negative
        DatabaseError: If database operation fails
    """
    amount = to_quantity(delta, "delta", allow_negative=True)

    try:
        with ledger_lock:
            if session is not None:
                return _adjust_stock_quantity_impl(item_id, amount, session)
            with session_scope() as session:
                return _adjust_stock_quantity_impl(item_id, amount, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to adjust stock quantity: {str(e)}", e)


def _adjust_stock_quantity_impl(item_id: int, delta: Decimal, session: Session) -> StockItem:
    item = _fetch_for_update(item_id, session)
    current = Decimal(item.quantity).quantize(QUANTITY_QUANTUM)
    new_quantity = current + delta

    if new_quantity < 0:
        log_operation(
            logger,
            operation="adjust_stock_quantity",
            outcome="insufficient_stock",
            level=logging.WARNING,
            stock_item_id=item.id,
            delta=str(delta),
            available=str(current),
        )
        raise InsufficientStockError([StockShortfall(item.id, item.name, -delta, current)])

    if new_quantity > MAX_QUANTITY:
        raise InvalidQuantityError("quantity", str(new_quantity), f"must be at most {MAX_QUANTITY}")

    item.quantity = new_quantity
    session.flush()

    log_operation(
        logger,
        operation="adjust_stock_quantity",
        outcome="success",
        level=logging.DEBUG,
        stock_item_id=item.id,
        delta=str(delta),
        new_quantity=str(new_quantity),
    )
    return item


def apply_delta(item_id: int, delta: Any, session: Optional[Session] = None) -> Decimal:
    """
    Add a signed ``delta`` to an item's quantity and return the new quantity.

    Same contract as adjust_stock_quantity().
    """
    item = adjust_stock_quantity(item_id, delta, session=session)
    return Decimal(item.quantity)


# ============================================================================
# Reporting
# ============================================================================


def get_low_stock_items(session: Optional[Session] = None) -> List[StockItem]:
    """
    Get items whose quantity is at or below their min_threshold.

    Returns:
        StockItems ordered by how far below the threshold they are (worst first)

    Raises:
        DatabaseError: If database operation fails
    """
    try:
        if session is not None:
            return _get_low_stock_items_impl(session)
        with session_scope() as session:
            return _get_low_stock_items_impl(session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get low stock items: {str(e)}", e)


def _get_low_stock_items_impl(session: Session) -> List[StockItem]:
    return (
        session.query(StockItem)
        .filter(StockItem.quantity <= StockItem.min_threshold)
        .order_by((StockItem.quantity - StockItem.min_threshold).asc(), StockItem.name)
        .all()
    )
