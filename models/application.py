from sqlalchemy import JSON, Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text

from database import Base


class LoanApplicationRow(Base):
    __tablename__ = "loan_applications"

    id = Column(String(64), primary_key=True, index=True)
    user_id = Column(String(64), ForeignKey("users.id"), nullable=False, index=True)
    country = Column(String(2), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    months = Column(Integer, nullable=False)
    monthly_payment = Column(Float, nullable=False)
    status = Column(String(32), nullable=False, default="DRAFT", index=True)
    # Embedded provider results (snake_case dicts)
    document_result = Column(JSON, nullable=True)
    verification_result = Column(JSON, nullable=True)
    contract_text = Column(Text, nullable=True)
    contract_signed = Column(Boolean, nullable=False, default=False)
    biometric_attempts = Column(Integer, nullable=False, default=0)
    last_biometric_attempt_at = Column(DateTime(timezone=True), nullable=True)
    decided_by = Column(String(64), nullable=True)
    # Optimistic concurrency token, bumped on every write
    version = Column(Integer, nullable=False, default=0)
    submitted_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
