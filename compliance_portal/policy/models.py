"""
CompanyPolicy — organisation-wide document, live as soon as it is created.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, BigInteger, ForeignKey, DateTime, Uuid

from compliance_portal.database.postgresql import Base


class CompanyPolicy(Base):
    __tablename__ = "company_policies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, index=True)
    file_url = Column(String(512), nullable=False)  # storage path inside the documents bucket
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(150), nullable=False)
    file_size = Column(BigInteger, nullable=False)
    uploaded_by = Column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
