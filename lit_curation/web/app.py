from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Callable, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from lit_curation.api.models import (
    BatchOutcomeView,
    ClaimRequest,
    ClaimView,
    DoisRequest,
    KeywordsRequest,
    PaperView,
    ReviewEntryView,
    SessionView,
    StageRequest,
    TopicRequest,
)
from lit_curation.config.settings import get_settings
from lit_curation.errors import (
    CurationError,
    PreconditionError,
    SessionBusyError,
    UnknownItemError,
    UnknownStageError,
)
from lit_curation.web.limits import BatchRateLimiter
from lit_curation.workflow.orchestrator import Orchestrator
from lit_curation.workflow.processors import BatchOutcome

logger = logging.getLogger("lit_curation.web")
logging.basicConfig(level=logging.INFO)


# -------------------------------------------------------------------
# Lifespan: one in-memory session per process
# -------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup/shutdown handler:
    - Build an orchestrator (fresh session + HTTP clients) unless one was
      already installed on app.state (tests do this).
    - Create the lock that serializes batch runs and the batch rate limiter.
    """
    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = Orchestrator.from_settings()
        logger.info("Started a fresh curation session")
    app.state.batch_lock = asyncio.Lock()
    app.state.rate_limiter = BatchRateLimiter.from_settings(get_settings())

    yield


app = FastAPI(
    title="Literature Curation API",
    description="Drive a topic -> search -> download -> extract -> verify curation session.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------------------------
# Middleware
# -------------------------------------------------------------------

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log method, path, and response status.
    """
    logger.info(f"Incoming request: {request.method} {request.url.path}")
    start = time.time()

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    logger.info(
        f"Completed {request.method} {request.url.path} "
        f"with status {response.status_code} in {duration_ms:.2f}ms"
    )

    return response


# -------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------

@app.exception_handler(CurationError)
async def curation_error_handler(request: Request, exc: CurationError) -> JSONResponse:
    if isinstance(exc, SessionBusyError):
        status_code = 409
    elif isinstance(exc, PreconditionError):
        status_code = 422
    elif isinstance(exc, (UnknownItemError, UnknownStageError)):
        status_code = 404
    else:
        status_code = 503
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _get_orchestrator(app_obj: FastAPI) -> Orchestrator:
    """
    Fetch the orchestrator from app.state, initializing if needed.
    """
    orchestrator = getattr(app_obj.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = Orchestrator.from_settings()
        app_obj.state.orchestrator = orchestrator
    return orchestrator


def _get_batch_lock(app_obj: FastAPI) -> asyncio.Lock:
    lock = getattr(app_obj.state, "batch_lock", None)
    if lock is None:
        lock = asyncio.Lock()
        app_obj.state.batch_lock = lock
    return lock


def _get_rate_limiter(app_obj: FastAPI) -> BatchRateLimiter:
    limiter = getattr(app_obj.state, "rate_limiter", None)
    if limiter is None:
        limiter = BatchRateLimiter.from_settings(get_settings())
        app_obj.state.rate_limiter = limiter
    return limiter


def _session_view(request: Request) -> SessionView:
    return SessionView.from_session(_get_orchestrator(request.app).session)


def _batches(orchestrator: Orchestrator) -> Dict[str, Callable[[], BatchOutcome]]:
    return {
        "keywords": orchestrator.generate_keywords,
        "search": orchestrator.search,
        "download": orchestrator.download,
        "process": orchestrator.process,
        "verify": orchestrator.verify,
    }


# -------------------------------------------------------------------
# Routes: session state
# -------------------------------------------------------------------

@app.get("/health", summary="Health check")
async def health() -> dict:
    return {"status": "ok"}


@app.get("/session", response_model=SessionView, summary="Current session state")
async def get_session(request: Request) -> SessionView:
    return _session_view(request)


@app.put(
    "/session/topic",
    response_model=SessionView,
)
async def set_topic(payload: TopicRequest, request: Request) -> SessionView:
    _get_orchestrator(request.app).session.set_topic(payload.topic)
    return _session_view(request)


@app.put(
    "/session/keywords",
    response_model=SessionView,
)
async def set_keywords(payload: KeywordsRequest, request: Request) -> SessionView:
    _get_orchestrator(request.app).session.set_keywords(payload.keywords)
    return _session_view(request)


@app.put(
    "/session/stage",
    response_model=SessionView,
)
async def set_stage(payload: StageRequest, request: Request) -> SessionView:
    _get_orchestrator(request.app).session.go_to(payload.stage)
    return _session_view(request)


@app.post("/session/stage/next", response_model=SessionView)
async def next_stage(request: Request) -> SessionView:
    """Step forward one stage; stays on FinalReview."""
    _get_orchestrator(request.app).session.stages.next()
    return _session_view(request)


@app.post("/session/stage/back", response_model=SessionView)
async def previous_stage(request: Request) -> SessionView:
    """Step back one stage; stays on TopicDefinition."""
    _get_orchestrator(request.app).session.stages.back()
    return _session_view(request)


@app.post(
    "/session/claims",
    response_model=ClaimView,
    status_code=201,
)
async def add_claim(payload: ClaimRequest, request: Request) -> ClaimView:
    claim = _get_orchestrator(request.app).session.add_claim(payload.text)
    return ClaimView.from_claim(claim)


@app.delete(
    "/session/claims/{claim_id}",
    response_model=SessionView,
)
async def remove_claim(claim_id: str, request: Request) -> SessionView:
    _get_orchestrator(request.app).session.remove_claim(claim_id)
    return _session_view(request)


@app.post(
    "/session/papers/dois",
    response_model=List[PaperView],
    status_code=201,
)
async def add_dois(payload: DoisRequest, request: Request) -> List[PaperView]:
    papers = _get_orchestrator(request.app).session.add_dois(payload.dois)
    return [PaperView.from_paper(p) for p in papers]


@app.post(
    "/session/papers/requeue",
    response_model=SessionView,
)
async def requeue_failed(request: Request) -> SessionView:
    _get_orchestrator(request.app).session.requeue_failed_papers()
    return _session_view(request)


@app.delete(
    "/session/papers/{paper_id}",
    response_model=SessionView,
)
async def remove_paper(paper_id: str, request: Request) -> SessionView:
    _get_orchestrator(request.app).session.remove_paper(paper_id)
    return _session_view(request)


# -------------------------------------------------------------------
# Routes: batches + review
# -------------------------------------------------------------------

@app.post(
    "/batches/{name}",
    response_model=BatchOutcomeView,
    summary="Run one pipeline batch (keywords, search, download, process, verify)",
)
async def run_batch(name: str, request: Request) -> BatchOutcomeView:
    """
    Run a batch to completion in a worker thread.

    - 404 for an unknown batch name.
    - 409 if another batch is still running.
    - 429 once the batch has been triggered too often in the current window.
    - 422 if the batch's input (topic / keywords) is missing.
    """
    orchestrator = _get_orchestrator(request.app)
    batch = _batches(orchestrator).get(name)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Unknown batch {name!r}")

    _get_rate_limiter(request.app).check(name)

    lock = _get_batch_lock(request.app)
    if lock.locked() or orchestrator.session.busy:
        raise SessionBusyError(orchestrator.session.running)

    async with lock:
        outcome = await run_in_threadpool(batch)

    return BatchOutcomeView.from_outcome(outcome)


@app.get(
    "/review",
    response_model=List[ReviewEntryView],
    summary="Verified claims with the titles of their supporting papers",
)
async def get_review(request: Request) -> List[ReviewEntryView]:
    entries = _get_orchestrator(request.app).review()
    return [ReviewEntryView.from_entry(e) for e in entries]
