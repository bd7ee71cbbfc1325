"""
DeliveryEvent model for scheduled basket distributions.
"""

from sqlalchemy import Column, Date, Index, String, Text

from .base import BaseModel


class DeliveryEvent(BaseModel):
    """
    A scheduled delivery day.

    Attributes:
        title: Event title (e.g., "Entrega de Dezembro")
        event_date: Day of the distribution
        description: Optional details
    """

    __tablename__ = "delivery_events"

    title = Column(String(200), nullable=False)
    event_date = Column(Date, nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (Index("idx_delivery_event_date", "event_date"),)

    def __repr__(self) -> str:
        return f"DeliveryEvent(id={self.id}, title='{self.title}', event_date={self.event_date})"
