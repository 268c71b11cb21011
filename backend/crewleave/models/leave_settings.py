from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from crewleave.core.database import Base

SINGLETON_ID = 1


class LeaveSettings(Base):
    """Global leave policy row. There is only ever the row with id=1."""

    __tablename__ = "leave_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SINGLETON_ID)
    # Weekday numbers, 0=Sunday..6=Saturday
    excluded_weekdays: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
