"""SQLAlchemy ORM models.

These models define the database schema. DAOs convert these to Pydantic
domain models before returning to services - SQLAlchemy objects should
never leak outside the DAO layer.
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, String, Text

from audiodrop.database import Base
from audiodrop.enums import JobStatus


class JobModel(Base):
    """Job ORM model.

    One row per accepted submission, tracking its lifecycle.
    """

    __tablename__ = "jobs"

    id = Column(String, primary_key=True)
    source_url = Column(Text, nullable=False, default="")
    recipient_email = Column(String, nullable=False, default="", index=True)
    status = Column(
        String,
        nullable=False,
        default=JobStatus.PENDING.value,
        index=True,
    )
    failure_reason = Column(String, nullable=True)
    download_link = Column(Text, nullable=True)
    detail = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
    finished_at = Column(DateTime, nullable=True)
