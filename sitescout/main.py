# sitescout/main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sitescout.core.config import Settings, settings as default_settings
from sitescout.core.errors import ConfigurationError, SiteScoutError, StaleRunError, TransportError
from sitescout.core.logging import configure_logging
from sitescout.models import (
    AnalysisRequest,
    AnalysisStatus,
    ChatMessage,
    ChatRequest,
    ChatResponse,
    HistoryEntry,
    SiteAnalysis,
    StatusResponse,
)
from sitescout.services import analysis_service
from sitescout.services.history_service import HistoryStore, KeyValueStore, SqliteKeyValueStore
from sitescout.services.llm_service import GeminiClient, build_client
from sitescout.services.prompt_service import normalize_url
from sitescout.services.workflow_service import AnalysisWorkflow

logger = logging.getLogger(__name__)

# --- Application State ---
class AppState:
    """Everything a request handler needs, built once per application."""

    def __init__(self, client: Optional[GeminiClient], workflow: AnalysisWorkflow, history: HistoryStore):
        self.client = client
        self.workflow = workflow
        self.history = history

    def require_client(self) -> GeminiClient:
        if self.client is None:
            raise ConfigurationError()
        return self.client


def build_state(
    settings: Settings,
    client: Optional[GeminiClient] = None,
    store: Optional[KeyValueStore] = None,
) -> AppState:
    if client is None:
        try:
            client = build_client(settings)
        except ConfigurationError as e:
            logger.warning("%s", e.user_message)
    if store is None:
        store = SqliteKeyValueStore(settings.HISTORY_DB_PATH)
    return AppState(
        client=client,
        workflow=AnalysisWorkflow(interval=settings.PROGRESS_INTERVAL_SECONDS),
        history=HistoryStore(store, limit=settings.HISTORY_LIMIT),
    )


def get_state(request: Request) -> AppState:
    return request.app.state.services


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[GeminiClient] = None,
    store: Optional[KeyValueStore] = None,
) -> FastAPI:
    """
    Builds the API. ``client`` and ``store`` default to the Gemini client and the
    sqlite history configured in ``settings``; tests pass fakes instead.
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.services = build_state(settings, client=client, store=store)
        yield

    # --- FastAPI App Initialization ---
    app = FastAPI(
        title="SiteScout",
        description="An API that reverse engineers a website into a grounded intelligence report and answers follow-up questions about it.",
        version="1.0.0",
        lifespan=lifespan,
    )

    # --- CORS Middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SiteScoutError)
    async def handle_sitescout_error(request: Request, exc: SiteScoutError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.user_message})

    register_routes(app)
    return app


def _status(workflow: AnalysisWorkflow) -> StatusResponse:
    return StatusResponse(
        status=workflow.status,
        url=workflow.url,
        progress_message=workflow.progress_message(),
        error=workflow.error,
        analysis=workflow.analysis,
    )


def register_routes(app: FastAPI) -> None:
    # --- API Endpoints ---
    @app.post("/api/analyze", response_model=SiteAnalysis)
    async def analyze_website(request: AnalysisRequest, state: AppState = Depends(get_state)):
        """
        Receives a domain, asks Gemini for a search-grounded report and returns it.
        The report becomes the current analysis for chat and is added to the history.
        """
        workflow = state.workflow
        url = normalize_url(request.url)
        run_id = workflow.begin(url)
        try:
            client = state.require_client()
            reply = await analysis_service.request_analysis(client, url)
            workflow.advance(run_id, AnalysisStatus.ANALYZING)
            result = analysis_service.build_site_analysis(reply, url)
        except SiteScoutError as e:
            workflow.fail(run_id, e.user_message)
            raise
        except Exception as e:
            logger.exception("Unexpected failure while analyzing %s", url)
            error = TransportError(str(e))
            workflow.fail(run_id, error.user_message)
            raise error from e

        if not workflow.complete(run_id, result):
            raise StaleRunError()
        state.history.record(result)
        return result

    @app.get("/api/status", response_model=StatusResponse)
    async def get_status(state: AppState = Depends(get_state)):
        """Current wizard state, including the rotating progress message while crawling."""
        return _status(state.workflow)

    @app.post("/api/reset", response_model=StatusResponse)
    async def reset(state: AppState = Depends(get_state)):
        state.workflow.reset()
        return _status(state.workflow)

    @app.post("/api/chat", response_model=ChatResponse)
    async def chat_with_llm(request: ChatRequest, state: AppState = Depends(get_state)):
        """
        Answers a follow-up question about the current report. A failed turn is
        answered with a fallback message instead of an error.
        """
        log = state.workflow.chat
        if log is None:
            raise HTTPException(status_code=400, detail="Please analyze a website first before starting a chat.")

        history = log.start_turn(request.question)
        try:
            answer = await analysis_service.ask_follow_up(
                state.require_client(), log.analysis, request.question, history
            )
        except SiteScoutError as e:
            logger.warning("Follow-up question failed: %s", e)
            message = log.fail_turn()
        else:
            message = log.finish_turn(answer)

        return ChatResponse(
            answer=message.content,
            is_deep_dive=bool(message.is_deep_dive),
            sources=message.sources or (),
            messages=list(log.messages),
        )

    @app.get("/api/chat", response_model=List[ChatMessage])
    async def get_chat(state: AppState = Depends(get_state)):
        log = state.workflow.chat
        return list(log.messages) if log else []

    @app.get("/api/history", response_model=List[HistoryEntry])
    async def list_history(limit: Optional[int] = Query(default=None, ge=1), state: AppState = Depends(get_state)):
        """Cached reports, most recent first. ``limit`` trims the list for the start-page preview."""
        if limit is not None:
            return state.history.recent(limit)
        return state.history.load_all()

    @app.get("/api/history/{entry_id}", response_model=HistoryEntry)
    async def get_history_entry(entry_id: str, state: AppState = Depends(get_state)):
        entry = state.history.get(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="No cached report with that id.")
        return entry

    @app.post("/api/history/{entry_id}/open", response_model=StatusResponse)
    async def open_history_entry(entry_id: str, state: AppState = Depends(get_state)):
        """Makes a cached report the current analysis without calling the model again."""
        entry = state.history.get(entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="No cached report with that id.")
        state.workflow.select(entry.data)
        return _status(state.workflow)

    @app.delete("/api/history/{entry_id}", status_code=204)
    async def delete_history_entry(entry_id: str, state: AppState = Depends(get_state)):
        state.history.remove(entry_id)
        return Response(status_code=204)

    # A simple root endpoint to confirm the API is running
    @app.get("/")
    async def read_root():
        return {"message": "Welcome to the SiteScout API"}


app = create_app()
