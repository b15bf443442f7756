from __future__ import annotations

import logging
from typing import List

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.models import RunStatus, WorkflowRun
from steps.errors import PersistenceError

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


class RunStore:
    """Workflow run records backed by a SQLAlchemy session.

    Runs are created pending, finalized once, and never deleted here.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, prompt: str, action: str) -> WorkflowRun:
        run = WorkflowRun(
            prompt=prompt,
            action=action,
            status=RunStatus.PENDING.value,
            ai_response="",
            api_response="",
            final_result="",
        )
        try:
            self.db.add(run)
            self.db.commit()
            self.db.refresh(run)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to create workflow run: {e}") from e
        logger.info("Created pending workflow run %s", run.id)
        return run

    def finalize(self, run_id: str, ai_response: str, api_response: str, final_result: str) -> WorkflowRun:
        try:
            run = self.db.get(WorkflowRun, run_id)
            if run is None:
                raise PersistenceError(f"Workflow run {run_id} not found")
            run.ai_response = ai_response
            run.api_response = api_response
            run.final_result = final_result
            run.status = RunStatus.COMPLETE.value
            self.db.commit()
            self.db.refresh(run)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to finalize workflow run {run_id}: {e}") from e
        logger.info("Finalized workflow run %s", run_id)
        return run

    def recent(self, limit: int = HISTORY_LIMIT) -> List[WorkflowRun]:
        try:
            result = self.db.execute(
                select(WorkflowRun).order_by(WorkflowRun.created_at.desc()).limit(limit)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load workflow history: {e}") from e

    def count(self) -> int:
        try:
            return self.db.execute(select(func.count()).select_from(WorkflowRun)).scalar_one()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count workflow runs: {e}") from e
