# sitescout/services/workflow_service.py
import logging
import time
import uuid
from typing import Callable, List, Optional

from sitescout.core.errors import AnalysisInProgressError, ChatInProgressError, ChatTurnError
from sitescout.models import AnalysisStatus, ChatMessage, FollowUpAnswer, SiteAnalysis

logger = logging.getLogger(__name__)

INITIAL_PROGRESS_MESSAGE = "Initializing crawler..."
PROGRESS_MESSAGES = [
    "Simulating web-head browsing...",
    "Mapping site hierarchy...",
    "Discovering public endpoints...",
    "Analyzing business logic patterns...",
    "Synthesizing structural requirements...",
    "Validating data grounding...",
]
BUSY_STATUSES = (AnalysisStatus.CRAWLING, AnalysisStatus.ANALYZING)


class ChatLog:
    """Append-only conversation about one report."""

    def __init__(self, analysis: SiteAnalysis):
        self.analysis = analysis
        self.messages: List[ChatMessage] = []
        self.pending = False

    def start_turn(self, question: str) -> List[ChatMessage]:
        """
        Appends the user's question and marks the log busy.

        Returns:
            The messages that preceded this question, for use as transcript context.
        """
        if self.pending:
            raise ChatInProgressError()
        history = list(self.messages)
        self.messages.append(ChatMessage(role="user", content=question))
        self.pending = True
        return history

    def finish_turn(self, answer: FollowUpAnswer) -> ChatMessage:
        return self._reply(ChatMessage(
            role="assistant",
            content=answer.answer,
            is_deep_dive=answer.is_deep_dive,
            sources=answer.sources,
        ))

    def fail_turn(self) -> ChatMessage:
        return self._reply(ChatMessage(role="assistant", content=ChatTurnError.default_message))

    def _reply(self, message: ChatMessage) -> ChatMessage:
        self.messages.append(message)
        self.pending = False
        return message


class AnalysisWorkflow:
    """
    Server-side copy of the analyzer wizard: IDLE -> CRAWLING -> ANALYZING ->
    COMPLETED or ERROR. Every run gets an id and only the current run may move
    the state, so a result arriving after a reset or a newer run is dropped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, interval: float = 3.0):
        self._clock = clock
        self.interval = interval
        self.status = AnalysisStatus.IDLE
        self.url: Optional[str] = None
        self.analysis: Optional[SiteAnalysis] = None
        self.error: Optional[str] = None
        self.chat: Optional[ChatLog] = None
        self._run_id: Optional[str] = None
        self._started_at: Optional[float] = None

    @property
    def busy(self) -> bool:
        return self.status in BUSY_STATUSES

    def begin(self, url: str) -> str:
        if self.busy:
            raise AnalysisInProgressError()
        self._run_id = uuid.uuid4().hex
        self._started_at = self._clock()
        self.status = AnalysisStatus.CRAWLING
        self.url = url
        self.analysis = None
        self.error = None
        self.chat = None
        return self._run_id

    def is_current(self, run_id: str) -> bool:
        return run_id == self._run_id

    def _accepts(self, run_id: str, what: str) -> bool:
        if self.is_current(run_id):
            return True
        logger.info("Discarding %s of abandoned analysis run %s", what, run_id)
        return False

    def advance(self, run_id: str, status: AnalysisStatus) -> bool:
        if not self._accepts(run_id, "progress"):
            return False
        self.status = status
        return True

    def complete(self, run_id: str, analysis: SiteAnalysis) -> bool:
        if not self._accepts(run_id, "result"):
            return False
        self._open(analysis)
        return True

    def fail(self, run_id: str, message: str) -> bool:
        if not self._accepts(run_id, "error"):
            return False
        self.status = AnalysisStatus.ERROR
        self.error = message
        self._run_id = None
        return True

    def select(self, analysis: SiteAnalysis) -> None:
        """Opens a cached report. Any outstanding run is abandoned."""
        self._open(analysis)

    def reset(self) -> None:
        self.status = AnalysisStatus.IDLE
        self.url = None
        self.analysis = None
        self.error = None
        self.chat = None
        self._run_id = None
        self._started_at = None

    def _open(self, analysis: SiteAnalysis) -> None:
        self.status = AnalysisStatus.COMPLETED
        self.url = analysis.url
        self.analysis = analysis
        self.error = None
        self.chat = ChatLog(analysis)
        self._run_id = None
        self._started_at = None

    def progress_message(self) -> Optional[str]:
        if not self.busy or self._started_at is None:
            return None
        ticks = int((self._clock() - self._started_at) // self.interval)
        if ticks == 0:
            return INITIAL_PROGRESS_MESSAGE
        return PROGRESS_MESSAGES[(ticks - 1) % len(PROGRESS_MESSAGES)]
