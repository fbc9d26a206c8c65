"""
Profile model — one row per account with organisational attributes.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, Boolean, ForeignKey, DateTime, Date, Uuid

from compliance_portal.database.postgresql import Base


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Uuid, ForeignKey("accounts.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), nullable=False, index=True)

    # ── Personal ──
    first_name = Column(String(100), nullable=True)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    blood_group = Column(String(5), nullable=True)

    # ── Contact ──
    phone_number = Column(String(30), nullable=True)
    emergency_contact_name = Column(String(200), nullable=True)
    emergency_contact_phone = Column(String(30), nullable=True)
    permanent_address = Column(Text, nullable=True)
    current_address = Column(Text, nullable=True)

    # ── Employment ──
    department = Column(String(50), nullable=True, index=True)
    designation = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default="employee")  # employee | hr
    date_of_joining = Column(Date, nullable=True)
    reporting_manager = Column(String(200), nullable=True)
    work_location = Column(String(200), nullable=True)
    shift_timing = Column(String(100), nullable=True)

    # ── Bank ──
    bank_account_number = Column(String(34), nullable=True)
    ifsc_code = Column(String(11), nullable=True)

    profile_picture_url = Column(Text, nullable=True)
    profile_completed = Column(Boolean, nullable=False, default=False)
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

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name, self.last_name]
        return " ".join(p for p in parts if p) or self.email
