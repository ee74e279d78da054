"""Shared SQLAlchemy base definitions and enums."""

from __future__ import annotations

from sqlalchemy import Enum as SAEnum, MetaData
from sqlalchemy.orm import DeclarativeBase

from settleboard.shared.enums import (
    CreatorType,
    EventStatus,
    PositionOutcome,
    PositionStatus,
    TicketStatus,
    Tier,
)


# Shared metadata so DDL rendering sees every table
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)


class Base(DeclarativeBase):
    metadata = metadata


def _values(enum_cls):
    return [member.value for member in enum_cls]


# SQLAlchemy Enum instances bound to shared metadata; stored by value
event_status_enum = SAEnum(EventStatus, name="event_status", metadata=metadata, values_callable=_values)
position_status_enum = SAEnum(PositionStatus, name="position_status", metadata=metadata, values_callable=_values)
position_outcome_enum = SAEnum(PositionOutcome, name="position_outcome", metadata=metadata, values_callable=_values)
creator_type_enum = SAEnum(CreatorType, name="creator_type", metadata=metadata, values_callable=_values)
tier_enum = SAEnum(Tier, name="expert_tier", metadata=metadata, values_callable=_values)
ticket_status_enum = SAEnum(TicketStatus, name="ticket_status", metadata=metadata, values_callable=_values)


__all__ = [
    "Base",
    "metadata",
    "event_status_enum",
    "position_status_enum",
    "position_outcome_enum",
    "creator_type_enum",
    "tier_enum",
    "ticket_status_enum",
]
