"""
SQLAlchemy ORM Models
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    ForeignKey,
    Index,
    JSON,
    String,
    Text,
    TIMESTAMP,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from casechron.db.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")

# ============================================================================
# Enums
# ============================================================================

class EntryCategory(str, enum.Enum):
    """Controlled chronology entry categories"""
    communication = "Communication"
    financial_transaction = "Financial Transaction"
    legal_filing = "Legal Filing"
    contract = "Contract"
    meeting_conference = "Meeting/Conference"
    document_creation = "Document Creation"
    property_real_estate = "Property/Real Estate"
    investigation = "Investigation"
    compliance = "Compliance"
    other = "Other"

    @classmethod
    def values(cls) -> list[str]:
        return [member.value for member in cls]


class PartyRole(str, enum.Enum):
    """Party role in a case"""
    plaintiff = "Plaintiff"
    defendant = "Defendant"
    co_plaintiff = "Co-Plaintiff"
    co_defendant = "Co-Defendant"
    third_party_defendant = "Third-Party Defendant"
    cross_defendant = "Cross-Defendant"
    witness = "Witness"
    expert_witness = "Expert Witness"
    attorney = "Attorney"
    judge = "Judge"
    mediator = "Mediator"
    other = "Other"


class SharePermission(str, enum.Enum):
    read = "read"
    write = "write"


# ============================================================================
# Models
# ============================================================================

class User(Base):
    """Application user (identity is issued by the auth layer)"""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default="true")

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    cases = relationship("Case", back_populates="owner", cascade="all, delete-orphan")


class Case(Base):
    """Litigation matter"""
    __tablename__ = "cases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Prompt context
    context = Column(Text, nullable=True)
    key_parties = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = relationship("User", back_populates="cases")
    shares = relationship("CaseShare", back_populates="case", cascade="all, delete-orphan")
    parties = relationship("Party", back_populates="case", cascade="all, delete-orphan")
    chronologies = relationship("Chronology", back_populates="case", cascade="all, delete-orphan")
    entries = relationship("ChronologyEntry", back_populates="case", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="case", cascade="all, delete-orphan")


class CaseShare(Base):
    """Access grant for a non-owner"""
    __tablename__ = "case_shares"
    __table_args__ = (
        UniqueConstraint("case_id", "user_id", name="uq_case_shares_case_user"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(String(10), nullable=False, default=SharePermission.read.value)
    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    case = relationship("Case", back_populates="shares")


class Party(Base):
    """Structured case participant"""
    __tablename__ = "parties"
    __table_args__ = (
        Index("ix_parties_case_role_name", "case_id", "role", "name"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False)
    description = Column(Text, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="parties")


class Chronology(Base):
    """Named timeline inside a case; exactly one per case is the default."""
    __tablename__ = "chronologies"
    __table_args__ = (
        Index(
            "uq_chronologies_one_default_per_case",
            "case_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(100), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="chronologies")
    entries = relationship("ChronologyEntry", back_populates="chronology")


class ChronologyEntry(Base):
    """One dated event in a case timeline"""
    __tablename__ = "chronology_entries"
    __table_args__ = (
        Index("ix_chronology_entries_case_order", "case_id", "date", "time", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False)
    chronology_id = Column(Uuid(as_uuid=True), ForeignKey("chronologies.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    date = Column(Date, nullable=False)
    time = Column(String(20), nullable=False, default="")
    parties = Column(Text, nullable=False, default="")
    title = Column(String(500), nullable=False)
    summary = Column(Text, nullable=False)
    source = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=True)
    legal_significance = Column(Text, nullable=False, default="")
    # Free-text cross reference; not a foreign key
    related_entries = Column(Text, nullable=False, default="")

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="entries")
    chronology = relationship("Chronology", back_populates="entries")
    documents = relationship("Document", back_populates="entry")

    @property
    def category_conforming(self) -> bool:
        return self.category is None or self.category in EntryCategory.values()


class Document(Base):
    """Uploaded file, its extracted content and optional entry link"""
    __tablename__ = "documents"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id", ondelete="CASCADE"), nullable=False, index=True)
    entry_id = Column(Uuid(as_uuid=True), ForeignKey("chronology_entries.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    filename = Column(String(255), nullable=False)
    file_type = Column(String(255), nullable=False, default="application/octet-stream")
    file_size = Column(BigInteger, nullable=False)

    # S3 Storage
    s3_key = Column(String(500), unique=True, nullable=False)
    s3_bucket = Column(String(100), nullable=False)

    content = Column(Text, nullable=True)
    # {originalName, uploadedAt, publicUrl?, exif?}
    doc_metadata = Column("metadata", JSONType, nullable=False, default=dict)

    created_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    case = relationship("Case", back_populates="documents")
    entry = relationship("ChronologyEntry", back_populates="documents")
