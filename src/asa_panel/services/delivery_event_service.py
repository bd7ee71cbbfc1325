"""
Delivery Event Service - the calendar of basket distributions.

Events are edited one row at a time; there is no bulk replace.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from asa_panel.models import DeliveryEvent
from asa_panel.services.database import session_scope
from asa_panel.services.exceptions import (
    DatabaseError,
    DeliveryEventNotFound,
    ValidationError,
)
from asa_panel.utils.validators import (
    parse_date,
    sanitize_string,
    validate_delivery_event_data,
)


def create_delivery_event(data: Dict[str, Any], session: Optional[Session] = None) -> DeliveryEvent:
    """
    Create a delivery event.

    Args:
        data: Dictionary with title, event_date (date or YYYY-MM-DD) and
            optional description

    Raises:
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_delivery_event_data(data)
    if not is_valid:
        raise ValidationError(errors)

    try:
        if session is not None:
            return _create_delivery_event_impl(data, session)
        with session_scope() as session:
            return _create_delivery_event_impl(data, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to create delivery event: {str(e)}", e)


def _create_delivery_event_impl(data: Dict[str, Any], session: Session) -> DeliveryEvent:
    event = DeliveryEvent(
        title=data["title"].strip(),
        event_date=parse_date(data["event_date"]),
        description=sanitize_string(data.get("description")),
    )
    session.add(event)
    session.flush()
    return event


def get_delivery_event(event_id: int, session: Optional[Session] = None) -> DeliveryEvent:
    """
    Get a delivery event by ID.

    Raises:
        DeliveryEventNotFound: If event not found
    """
    try:
        if session is not None:
            return _get_delivery_event_impl(event_id, session)
        with session_scope() as session:
            return _get_delivery_event_impl(event_id, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get delivery event: {str(e)}", e)


def _get_delivery_event_impl(event_id: int, session: Session) -> DeliveryEvent:
    event = session.query(DeliveryEvent).filter(DeliveryEvent.id == event_id).first()
    if event is None:
        raise DeliveryEventNotFound(event_id)
    return event


def get_delivery_events(
    upcoming_only: bool = False,
    today: Optional[date] = None,
    session: Optional[Session] = None,
) -> List[DeliveryEvent]:
    """
    Get delivery events ordered by date.

    Args:
        upcoming_only: If True, only events on or after ``today``
        today: Reference date (defaults to date.today())

    Returns:
        List of DeliveryEvent instances, earliest first
    """
    try:
        if session is not None:
            return _get_delivery_events_impl(upcoming_only, today, session)
        with session_scope() as session:
            return _get_delivery_events_impl(upcoming_only, today, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to get delivery events: {str(e)}", e)


def _get_delivery_events_impl(
    upcoming_only: bool, today: Optional[date], session: Session
) -> List[DeliveryEvent]:
    query = session.query(DeliveryEvent)
    if upcoming_only:
        query = query.filter(DeliveryEvent.event_date >= (today or date.today()))
    return query.order_by(DeliveryEvent.event_date, DeliveryEvent.id).all()


def update_delivery_event(
    event_id: int, data: Dict[str, Any], session: Optional[Session] = None
) -> DeliveryEvent:
    """
    Update a delivery event.

    Raises:
        DeliveryEventNotFound: If event not found
        ValidationError: If data validation fails
    """
    is_valid, errors = validate_delivery_event_data(data, partial=True)
    if not is_valid:
        raise ValidationError(errors)

    try:
        if session is not None:
            return _update_delivery_event_impl(event_id, data, session)
        with session_scope() as session:
            return _update_delivery_event_impl(event_id, data, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update delivery event: {str(e)}", e)


def _update_delivery_event_impl(
    event_id: int, data: Dict[str, Any], session: Session
) -> DeliveryEvent:
    event = _get_delivery_event_impl(event_id, session)
    if "title" in data:
        event.title = data["title"].strip()
    if "event_date" in data:
        event.event_date = parse_date(data["event_date"])
    if "description" in data:
        event.description = sanitize_string(data["description"])
    session.flush()
    return event


def delete_delivery_event(event_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a delivery event.

    Raises:
        DeliveryEventNotFound: If event not found
    """
    try:
        if session is not None:
            return _delete_delivery_event_impl(event_id, session)
        with session_scope() as session:
            return _delete_delivery_event_impl(event_id, session)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete delivery event: {str(e)}", e)


def _delete_delivery_event_impl(event_id: int, session: Session) -> bool:
    event = _get_delivery_event_impl(event_id, session)
    session.delete(event)
    session.flush()
    return True
