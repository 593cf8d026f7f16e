from __future__ import annotations

import enum
import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.sql import func

from .base import Base, JSONType


class DocumentStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (CheckConstraint("version >= 1", name="ck_documents_version_positive"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String, nullable=False)
    content = Column(Text, nullable=False, default="")
    type = Column(String, nullable=True)
    tags = Column(JSONType, nullable=False, default=list)
    status = Column(
        Enum(
            DocumentStatusEnum,
            name="document_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=DocumentStatusEnum.ACTIVE,
        index=True,
    )
    version = Column(Integer, nullable=False, default=1)
    # supersedes relation only; deleting the older row must not cascade
    previous_version_id = Column(
        Uuid(as_uuid=True), ForeignKey("documents.id", ondelete="SET NULL"), nullable=True, index=True
    )
    owner_id = Column(Uuid(as_uuid=True), nullable=True)
    owner_name = Column(String, nullable=True)
    ai_summary = Column(Text, nullable=True)
    summary_generated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
