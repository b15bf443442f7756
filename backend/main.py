from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.orm import Session

from backend.database import init_db, get_session, engine
from backend.runner import REQUIRED_FIELDS_MESSAGE, WorkflowRunner
from backend.settings import Settings, get_settings
from backend.store import HISTORY_LIMIT, RunStore
from fastapi_mcp import FastApiMCP
from steps.errors import ValidationError
from steps.generator import TextGenerator
from steps.providers import ProviderDispatcher

logger = logging.getLogger(__name__)


# Pydantic models for request/response validation
class RunWorkflowRequest(BaseModel):
    prompt: Optional[str] = None
    action: Optional[str] = None
    location: Optional[str] = None


class RunWorkflowResponse(BaseModel):
    ai_response: str
    api_response: str
    final_result: str


class WorkflowRunRecord(BaseModel):
    id: str
    prompt: str
    action: str
    status: str
    ai_response: str
    api_response: str
    final_result: str
    created_at: datetime


class WorkflowHistory(BaseModel):
    total: int
    runs: list[WorkflowRunRecord]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(lifespan=lifespan, docs_url="/api/docs")


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_body(request: Request, exc: RequestValidationError):
    logger.info("Rejected request body: %s", exc.errors())
    return JSONResponse({"error": REQUIRED_FIELDS_MESSAGE}, status_code=400)


def get_store(db: Session = Depends(get_session)) -> RunStore:
    return RunStore(db)


def get_generator(settings: Settings = Depends(get_settings)) -> TextGenerator:
    return TextGenerator(settings)


def get_dispatcher(settings: Settings = Depends(get_settings)) -> ProviderDispatcher:
    return ProviderDispatcher(settings)


def get_runner(
    store: RunStore = Depends(get_store),
    generator: TextGenerator = Depends(get_generator),
    dispatcher: ProviderDispatcher = Depends(get_dispatcher),
) -> WorkflowRunner:
    return WorkflowRunner(store, generator, dispatcher)


@app.get("/health", operation_id="health")
def health(settings: Settings = Depends(get_settings)):
    return {
        "ok": True,
        "mock_ai": settings.use_mock_ai or not settings.openai_api_key,
        "database": engine.dialect.name,
    }


@app.post("/api/run-workflow", operation_id="run_workflow", response_model=RunWorkflowResponse)
def run_workflow(request: RunWorkflowRequest, runner: WorkflowRunner = Depends(get_runner)):
    try:
        result = runner.run(request.prompt, request.action, request.location)
    except ValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    except Exception as e:
        logger.exception("Workflow run failed")
        return JSONResponse({"error": str(e) or "Server error"}, status_code=500)
    return RunWorkflowResponse(
        ai_response=result.ai_response,
        api_response=result.api_response,
        final_result=result.final_result,
    )


@app.get("/api/history", operation_id="workflow_history", response_model=WorkflowHistory)
def workflow_history(store: RunStore = Depends(get_store)):
    try:
        runs = store.recent(HISTORY_LIMIT)
    except Exception as e:
        logger.exception("History error")
        return JSONResponse({"error": str(e) or "Server error"}, status_code=500)
    return WorkflowHistory(
        total=len(runs),
        runs=[
            WorkflowRunRecord(
                id=r.id,
                prompt=r.prompt,
                action=r.action,
                status=r.status,
                ai_response=r.ai_response,
                api_response=r.api_response,
                final_result=r.final_result,
                created_at=r.created_at,
            )
            for r in runs
        ],
    )

mcp = FastApiMCP(app, name="workflow runner")
mcp.mount()
