from sqlalchemy import JSON, Boolean, Column, DateTime, String

from database import Base


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)
    mobile = Column(String(32), unique=True, nullable=False, index=True)
    national_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String(256), nullable=False)
    country = Column(String(2), nullable=False)
    role = Column(String(32), nullable=False, default="BORROWER")
    is_verified = Column(Boolean, nullable=False, default=False)
    password_hash = Column(String(256), nullable=True)
    company = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
