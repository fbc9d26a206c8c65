"""
Document — personal file uploaded by an employee and routed for review.
The blob lives in object storage under `file_path`.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Integer, BigInteger, ForeignKey, DateTime, Uuid

from compliance_portal.database.postgresql import Base


class Document(Base):
    __tablename__ = "documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    uploaded_by = Column(Uuid, ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False)
    department = Column(String(50), nullable=False, index=True)  # routes to reviewers
    upload_department = Column(String(50), nullable=True)  # uploader's own department

    filename = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    file_type = Column(String(150), nullable=False)

    status = Column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
    )  # pending | approved | rejected
    reviewed_by = Column(Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True)
    review_notes = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False, default=1)  # bumped on every status write

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
