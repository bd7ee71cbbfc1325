"""
Assembly Service for turning pantry stock into basic baskets.

This module provides functions for:
- Checking whether N baskets can be assembled, reporting every shortfall
- Assembling N baskets: decrementing every recipe line and incrementing the
  assembled-basket counter as one all-or-nothing unit of work
- Reading the assembly audit trail

The assembly runs under the ledger lock and inside a single transaction.
Stock is re-read with_for_update() and checked before anything is written;
if any later step fails the transaction rolls back, so a failed attempt
leaves every quantity and the counter untouched and can simply be retried.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from asa_panel.models import BasketAssemblyRun, StockItem
from asa_panel.services import basket_config_service, inventory_service
from asa_panel.services.basket_config_service import BasketConfiguration
from asa_panel.services.database import session_scope
from asa_panel.services.exceptions import (
    DatabaseError,
    EmptyRecipeError,
    InsufficientStockError,
    InvalidQuantityError,
    StockShortfall,
)
from asa_panel.services.logging_utils import get_service_logger, log_operation
from asa_panel.utils.validators import sanitize_string

logger = get_service_logger(__name__)


@dataclass
class AssemblyResult:
    """Outcome of a successful assembly."""

    new_count: int
    quantity_assembled: int
    updated_items: Dict[int, Decimal]  # stock_item_id -> quantity after assembly
    assembly_run_id: int


def _validate_basket_count(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError("baskets", quantity, "must be a whole number")
    if quantity < 1:
        raise InvalidQuantityError("baskets", quantity, "must be at least 1")
    return quantity


def _find_shortfalls(
    config: BasketConfiguration,
    quantity: int,
    session: Session,
    lock_rows: bool,
) -> List[StockShortfall]:
    """Check every consuming line against current stock; collect all failures."""
    lines = [line for line in config.items if line.quantity_required > 0]
    if not lines:
        raise EmptyRecipeError(config.name)

    query = session.query(StockItem).filter(
        StockItem.id.in_([line.stock_item_id for line in lines])
    )
    if lock_rows:
        # Ordered by id so concurrent transactions lock rows in the same order
        query = query.order_by(StockItem.id).with_for_update()
    items = {item.id: item for item in query.all()}

    shortfalls = []
    for line in lines:
        needed = line.quantity_required * quantity
        item = items.get(line.stock_item_id)
        available = Decimal(item.quantity) if item is not None else Decimal("0")
        if available < needed:
            shortfalls.append(
                StockShortfall(
                    stock_item_id=line.stock_item_id,
                    item_name=item.name if item is not None else None,
                    required=needed,
                    available=available,
                )
            )
    return shortfalls


# =============================================================================
# Availability Check
# =============================================================================


def check_can_assemble(quantity: int, *, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Check whether ``quantity`` baskets can be assembled from current stock.

    Advisory only: stock may change before an assembly commits.

    Args:
        quantity: Number of baskets, at least 1
        session: Optional database session

    Returns:
        Dict with keys:
            - "can_assemble" (bool)
            - "missing" (List[StockShortfall]): every line lacking stock

    Raises:
        InvalidQuantityError: If quantity is not a whole number >= 1
        EmptyRecipeError: If the recipe has no consuming lines
    """
    quantity = _validate_basket_count(quantity)
    try:
        if session is not None:
            return _check_can_assemble_impl(quantity, session)
        with session_scope() as session:
            return _check_can_assemble_impl(quantity, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to check basket availability: {str(e)}", e)


def _check_can_assemble_impl(quantity: int, session: Session) -> Dict[str, Any]:
    config = basket_config_service.load_basket_configuration(session=session)
    missing = _find_shortfalls(config, quantity, session, lock_rows=False)
    return {"can_assemble": len(missing) == 0, "missing": missing}


# =============================================================================
# Assembly
# =============================================================================


def assemble_baskets(
    quantity: int,
    *,
    notes: Optional[str] = None,
    session: Optional[Session] = None,
) -> AssemblyResult:
    """
    Assemble ``quantity`` baskets from the stored recipe.

    This function atomically:
    1. Re-reads every consuming line's stock item under lock
    2. Verifies each has quantity_required * quantity on hand, collecting
       every shortfall before failing
    3. Decrements each line's stock item by that amount
    4. Increments the assembled-basket counter by ``quantity``
    5. Writes a BasketAssemblyRun audit row

    When a session is passed, the caller's transaction owns the final commit;
    the assembly runs inside a savepoint, so a failed assembly leaves none of
    its writes in that transaction.

    Args:
        quantity: Number of baskets, at least 1
        notes: Optional operator notes stored on the audit row
        session: Optional database session

    Returns:
        AssemblyResult with the new counter value and post-assembly quantities

    Raises:
        InvalidQuantityError: If quantity is not a whole number >= 1
        EmptyRecipeError: If the recipe has no consuming lines
        InsufficientStockError: If any line lacks stock (lists all of them)
        DatabaseError: If database operation fails
    """
    quantity = _validate_basket_count(quantity)

    try:
        with inventory_service.ledger_lock:
            if session is not None:
                # Partial writes never survive in the caller's transaction
                with session.begin_nested():
                    return _assemble_baskets_impl(quantity, notes, session)
            with session_scope() as session:
                return _assemble_baskets_impl(quantity, notes, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to assemble baskets: {str(e)}", e)


def _assemble_baskets_impl(quantity: int, notes: Optional[str], session: Session) -> AssemblyResult:
    config = basket_config_service.load_basket_configuration(session=session)

    try:
        shortfalls = _find_shortfalls(config, quantity, session, lock_rows=True)
    except EmptyRecipeError:
        log_operation(
            logger,
            operation="assemble_baskets",
            outcome="empty_recipe",
            level=logging.WARNING,
            quantity=quantity,
        )
        raise

    if shortfalls:
        log_operation(
            logger,
            operation="assemble_baskets",
            outcome="insufficient_stock",
            level=logging.WARNING,
            quantity=quantity,
            shortfall_item_ids=[s.stock_item_id for s in shortfalls],
        )
        raise InsufficientStockError(shortfalls)

    updated_items: Dict[int, Decimal] = {}
    consumption = []
    for line in config.items:
        if line.quantity_required <= 0:
            continue
        needed = line.quantity_required * quantity
        item = inventory_service.adjust_stock_quantity(line.stock_item_id, -needed, session=session)
        updated_items[item.id] = Decimal(item.quantity)
        consumption.append({"stock_item_id": item.id, "quantity": str(needed)})

    new_count = basket_config_service.increment_assembled_count(quantity, session)

    run = BasketAssemblyRun(
        quantity_assembled=quantity,
        counter_after=new_count,
        consumption_data=json.dumps(consumption),
        notes=sanitize_string(notes),
    )
    session.add(run)
    session.flush()

    log_operation(
        logger,
        operation="assemble_baskets",
        outcome="success",
        quantity=quantity,
        new_count=new_count,
        assembly_run_id=run.id,
    )

    return AssemblyResult(
        new_count=new_count,
        quantity_assembled=quantity,
        updated_items=updated_items,
        assembly_run_id=run.id,
    )


# =============================================================================
# History
# =============================================================================


def get_assembly_history(
    limit: Optional[int] = None, *, session: Optional[Session] = None
) -> List[BasketAssemblyRun]:
    """
    Get assembly runs, newest first.

    Args:
        limit: Optional maximum number of runs
        session: Optional database session

    Returns:
        List of BasketAssemblyRun instances
    """
    try:
        if session is not None:
            return _get_assembly_history_impl(limit, session)
        with session_scope() as session:
            return _get_assembly_history_impl(limit, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get assembly history: {str(e)}", e)


def _get_assembly_history_impl(limit: Optional[int], session: Session) -> List[BasketAssemblyRun]:
    query = session.query(BasketAssemblyRun).order_by(
        BasketAssemblyRun.assembled_at.desc(), BasketAssemblyRun.id.desc()
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()
