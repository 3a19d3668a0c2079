import uuid
from datetime import date, datetime, time
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.stats_service.models.enums import ClassCategory, enum_values
from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Time,
    Uuid,
)
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

# Placeholder coach name the scheduling platform uses for unassigned classes
STAFF_SENTINEL = "STAFF"


class Member(Base):
    """Member directory entry, keyed by the chain-wide member identifier."""

    __tablename__ = "members"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id: Mapped[str] = mapped_column(
        String, unique=True, index=True, nullable=False
    )
    # Raw display name: "LAST, FIRST" or "FIRST LAST"
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<Member {self.member_id} {self.name!r}>"


class Visit(Base):
    """One class attendance record. Written by ingestion, read-only here."""

    __tablename__ = "visits"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Natural key from the scheduling platform, used for upserts
    visit_ref_no: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    member_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    class_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    class_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    location_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    coach_first_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    coach_last_name: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    class_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    cancelled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    missed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Studio-local booking timestamp, comparable with class_date + class_time
    booked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_visits_member_date", "member_id", "class_date"),
        Index(
            "ix_visits_coach_date", "coach_first_name", "coach_last_name", "class_date"
        ),
        Index("ix_visits_session", "class_date", "class_time", "location_name"),
    )

    def __repr__(self):
        return f"<Visit {self.visit_ref_no} Member={self.member_id} Date={self.class_date}>"


class ClassTypeSchedule(Base):
    """Programming calendar: which class category runs on a given date."""

    __tablename__ = "class_types"

    class_date: Mapped[date] = mapped_column(Date, primary_key=True)
    class_type: Mapped[ClassCategory] = mapped_column(
        SAEnum(
            ClassCategory,
            name="class_category_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    def __repr__(self):
        return f"<ClassTypeSchedule {self.class_date} {self.class_type.value}>"
