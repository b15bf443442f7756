from datetime import datetime, timezone
from enum import Enum
import uuid

from sqlalchemy import Column, String, DateTime, Text

from .database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"


class WorkflowRun(Base):
    __tablename__ = "workflow_runs"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    prompt = Column(Text, nullable=False)
    action = Column(String, nullable=False)
    status = Column(String, nullable=False, default=RunStatus.PENDING.value)
    ai_response = Column(Text, nullable=False, default="")
    api_response = Column(Text, nullable=False, default="")
    final_result = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)
