"""
Beneficiary Service - the registry of households served.

This service provides:
- Beneficiary CRUD with name search
- Recording a basket delivery (last delivery date plus history entry)
"""

import json
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from asa_panel.models import Beneficiary
from asa_panel.services.database import session_scope
from asa_panel.services.exceptions import (
    BeneficiaryNotFound,
    DatabaseError,
    ValidationError,
)
from asa_panel.services.logging_utils import get_service_logger, log_operation
from asa_panel.utils.constants import ERROR_INVALID_DATE
from asa_panel.utils.validators import (
    parse_date,
    sanitize_string,
    validate_beneficiary_data,
)

logger = get_service_logger(__name__)

_EDITABLE_FIELDS = ("name", "family_size", "address", "phone", "notes")


# ============================================================================
# Beneficiary CRUD Operations
# ============================================================================


def create_beneficiary(data: Dict[str, Any], session: Optional[Session] = None) -> Beneficiary:
    """
    Create a new beneficiary.

    Args:
        data: Dictionary with name and optionally family_size, address, phone, notes

    Returns:
        Created Beneficiary instance

    Raises:
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_beneficiary_data(data)
    if not is_valid:
        raise ValidationError(errors)

    try:
        if session is not None:
            return _create_beneficiary_impl(data, session)
        with session_scope() as session:
            return _create_beneficiary_impl(data, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to create beneficiary: {str(e)}", e)


def _create_beneficiary_impl(data: Dict[str, Any], session: Session) -> Beneficiary:
    beneficiary = Beneficiary(
        name=data["name"].strip(),
        family_size=data.get("family_size") or 1,
        address=sanitize_string(data.get("address")),
        phone=sanitize_string(data.get("phone")),
        notes=sanitize_string(data.get("notes")),
        history="[]",
    )
    session.add(beneficiary)
    session.flush()
    return beneficiary


def get_beneficiary(beneficiary_id: int, session: Optional[Session] = None) -> Beneficiary:
    """
    Get a beneficiary by ID.

    Raises:
        BeneficiaryNotFound: If beneficiary not found
        DatabaseError: If database operation fails
    """
    try:
        if session is not None:
            return _get_beneficiary_impl(beneficiary_id, session)
        with session_scope() as session:
            return _get_beneficiary_impl(beneficiary_id, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get beneficiary: {str(e)}", e)


def _get_beneficiary_impl(beneficiary_id: int, session: Session) -> Beneficiary:
    beneficiary = session.query(Beneficiary).filter(Beneficiary.id == beneficiary_id).first()
    if beneficiary is None:
        raise BeneficiaryNotFound(beneficiary_id)
    return beneficiary


def get_all_beneficiaries(
    name_search: Optional[str] = None, session: Optional[Session] = None
) -> List[Beneficiary]:
    """
    Get all beneficiaries ordered by name.

    Args:
        name_search: Optional name filter (partial match)

    Returns:
        List of Beneficiary instances
    """
    try:
        if session is not None:
            return _get_all_beneficiaries_impl(name_search, session)
        with session_scope() as session:
            return _get_all_beneficiaries_impl(name_search, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get beneficiaries: {str(e)}", e)


def _get_all_beneficiaries_impl(name_search: Optional[str], session: Session) -> List[Beneficiary]:
    query = session.query(Beneficiary)
    if name_search:
        query = query.filter(Beneficiary.name.ilike(f"%{name_search}%"))
    return query.order_by(Beneficiary.name, Beneficiary.id).all()


def update_beneficiary(
    beneficiary_id: int, data: Dict[str, Any], session: Optional[Session] = None
) -> Beneficiary:
    """
    Update a beneficiary's registry fields.

    Delivery history is not editable here; use record_basket_delivery().

    Raises:
        BeneficiaryNotFound: If beneficiary not found
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_beneficiary_data(data, partial=True)
    if not is_valid:
        raise ValidationError(errors)

    try:
        if session is not None:
            return _update_beneficiary_impl(beneficiary_id, data, session)
        with session_scope() as session:
            return _update_beneficiary_impl(beneficiary_id, data, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update beneficiary: {str(e)}", e)


def _update_beneficiary_impl(
    beneficiary_id: int, data: Dict[str, Any], session: Session
) -> Beneficiary:
    beneficiary = _get_beneficiary_impl(beneficiary_id, session)
    for key in _EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "name":
            value = value.strip()
        elif key == "family_size":
            value = value or 1
        else:
            value = sanitize_string(value)
        setattr(beneficiary, key, value)
    session.flush()
    return beneficiary


def delete_beneficiary(beneficiary_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a beneficiary.

    Raises:
        BeneficiaryNotFound: If beneficiary not found
        DatabaseError: If database operation fails
    """
    try:
        if session is not None:
            return _delete_beneficiary_impl(beneficiary_id, session)
        with session_scope() as session:
            return _delete_beneficiary_impl(beneficiary_id, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete beneficiary: {str(e)}", e)


def _delete_beneficiary_impl(beneficiary_id: int, session: Session) -> bool:
    beneficiary = _get_beneficiary_impl(beneficiary_id, session)
    session.delete(beneficiary)
    session.flush()
    return True


# ============================================================================
# Deliveries
# ============================================================================


def record_basket_delivery(
    beneficiary_id: int,
    delivered_on: Optional[Any] = None,
    note: Optional[str] = None,
    session: Optional[Session] = None,
) -> Beneficiary:
    """
    Record that a beneficiary received a basket.

    Appends {"date", "note"} to the history and moves last_basket_date
    forward (an older, back-filled delivery does not move it back).

    Args:
        beneficiary_id: Beneficiary ID
        delivered_on: date or YYYY-MM-DD string; defaults to today
        note: Optional note for the history entry

    Returns:
        Updated Beneficiary

    Raises:
        BeneficiaryNotFound: If beneficiary not found
        ValidationError: If delivered_on is not a valid date
    """
    if delivered_on is None:
        delivery_date = date.today()
    else:
        delivery_date = parse_date(delivered_on)
        if delivery_date is None:
            raise ValidationError([f"Date: {ERROR_INVALID_DATE}"])

    try:
        if session is not None:
            return _record_basket_delivery_impl(beneficiary_id, delivery_date, note, session)
        with session_scope() as session:
            return _record_basket_delivery_impl(beneficiary_id, delivery_date, note, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to record delivery: {str(e)}", e)


def _record_basket_delivery_impl(
    beneficiary_id: int, delivery_date: date, note: Optional[str], session: Session
) -> Beneficiary:
    beneficiary = _get_beneficiary_impl(beneficiary_id, session)

    history = beneficiary.get_history()
    history.append({"date": delivery_date.isoformat(), "note": sanitize_string(note)})
    beneficiary.history = json.dumps(history)

    if beneficiary.last_basket_date is None or delivery_date > beneficiary.last_basket_date:
        beneficiary.last_basket_date = delivery_date

    session.flush()
    log_operation(
        logger,
        operation="record_basket_delivery",
        outcome="success",
        beneficiary_id=beneficiary.id,
        delivered_on=delivery_date.isoformat(),
    )
    return beneficiary
