"""Session state machine.

A session moves through IDLE → IMAGE_READY → ANALYZING → RESOLVED | FAILED.
Every transition is a pure function returning a new SessionState;
SessionController is the single owner that threads state through them and
awaits the orchestrator.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from infectoscan.analysis import AnalysisOrchestrator
from infectoscan.capture.client import CaptureProvider
from infectoscan.constants import (
    HISTORY_ID_LENGTH,
    MSG_ANALYSIS_CANCELLED,
    MSG_CAMERA_DENIED,
    MSG_STALE_RESULT,
)
from infectoscan.errors import (
    AnalysisFailed,
    CaptureAccessDenied,
    InvalidTransition,
    UnknownHistoryEntry,
)
from infectoscan.models import AnalysisResult, CapturedImage, HistoryEntry

logger = logging.getLogger(__name__)


class Phase(Enum):
    IDLE = "idle"
    IMAGE_READY = "image_ready"
    ANALYZING = "analyzing"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True)
class SessionState:
    phase: Phase = Phase.IDLE
    image: Optional[CapturedImage] = None
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    history: tuple[HistoryEntry, ...] = ()
    camera_open: bool = False


# ── transitions ───────────────────────────────────────────────────────────────


def _reject(state: SessionState, action: str) -> InvalidTransition:
    return InvalidTransition(f"cannot {action} while {state.phase.value}")


def select_image(state: SessionState, image: CapturedImage) -> SessionState:
    match state.phase:
        case Phase.ANALYZING:
            raise _reject(state, "select an image")
        case _:
            return replace(
                state,
                phase=Phase.IMAGE_READY,
                image=image,
                result=None,
                error=None,
                camera_open=False,
            )


def discard_image(state: SessionState) -> SessionState:
    return replace(
        state,
        phase=Phase.IDLE,
        image=None,
        result=None,
        error=None,
        camera_open=False,
    )


def begin_analysis(state: SessionState) -> SessionState:
    match (state.phase, state.image):
        case (Phase.IMAGE_READY | Phase.RESOLVED | Phase.FAILED, CapturedImage()):
            return replace(state, phase=Phase.ANALYZING, error=None)
        case _:
            raise _reject(state, "start an analysis")


def resolve(state: SessionState, entry: HistoryEntry) -> SessionState:
    match state.phase:
        case Phase.ANALYZING:
            return replace(
                state,
                phase=Phase.RESOLVED,
                result=entry.result,
                error=None,
                history=(entry,) + state.history,
            )
        case _:
            raise _reject(state, "resolve")


def fail(state: SessionState, message: str) -> SessionState:
    match state.phase:
        case Phase.ANALYZING:
            return replace(state, phase=Phase.FAILED, result=None, error=message)
        case _:
            raise _reject(state, "fail")


def cancel_analysis(state: SessionState) -> SessionState:
    """Abandon the in-flight analysis and keep the image for a retry."""
    match state.phase:
        case Phase.ANALYZING:
            return replace(state, phase=Phase.IMAGE_READY, result=None, error=None)
        case _:
            raise _reject(state, "cancel")


def find_entry(state: SessionState, key: str) -> HistoryEntry:
    """Look up by entry id or by 1-based position in the history listing."""
    by_id = [e for e in state.history if e.id == key]
    match (by_id, key.isdigit()):
        case ([entry, *_], _):
            return entry
        case ([], True) if 1 <= int(key) <= len(state.history):
            return state.history[int(key) - 1]
        case _:
            raise UnknownHistoryEntry(key)


def select_history(state: SessionState, key: str) -> SessionState:
    match state.phase:
        case Phase.ANALYZING:
            raise _reject(state, "open a history entry")
        case _:
            entry = find_entry(state, key)
            return replace(
                state,
                phase=Phase.RESOLVED,
                image=entry.source_image,
                result=entry.result,
                error=None,
                camera_open=False,
            )


def clear_history(state: SessionState) -> SessionState:
    return replace(state, history=())


def open_camera(state: SessionState) -> SessionState:
    match state.phase:
        case Phase.ANALYZING:
            raise _reject(state, "open the camera")
        case _:
            return replace(state, camera_open=True, error=None)


def close_camera(state: SessionState) -> SessionState:
    return replace(state, camera_open=False)


def camera_denied(state: SessionState, message: str) -> SessionState:
    return replace(state, camera_open=False, error=message)


# ── controller ────────────────────────────────────────────────────────────────


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_entry_id() -> str:
    return uuid.uuid4().hex[:HISTORY_ID_LENGTH]


class SessionController:
    """Owns one session's state and its single in-flight analysis."""

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_entry_id,
    ) -> None:
        self._orchestrator = orchestrator
        self._clock = clock
        self._id_factory = id_factory
        self._state = SessionState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return self._state.phase is Phase.ANALYZING

    def select_image(self, image: CapturedImage) -> SessionState:
        self._state = select_image(self._state, image)
        return self._state

    def discard_image(self) -> SessionState:
        self._state = discard_image(self._state)
        return self._state

    def select_history(self, key: str) -> SessionState:
        self._state = select_history(self._state, key)
        return self._state

    def clear_history(self) -> SessionState:
        self._state = clear_history(self._state)
        return self._state

    def capture(self, provider: CaptureProvider) -> SessionState:
        """Grab one image from the provider and make it the current image."""
        self._state = open_camera(self._state)
        try:
            image = provider.capture()
        except CaptureAccessDenied:
            self._state = camera_denied(self._state, MSG_CAMERA_DENIED)
            raise
        except Exception:
            self._state = close_camera(self._state)
            raise
        self._state = select_image(close_camera(self._state), image)
        return self._state

    async def analyze(self) -> Optional[SessionState]:
        """Analyze the current image. Raises InvalidTransition if already analyzing.

        Returns None when the image was discarded or replaced before the
        outcome arrived; the outcome is dropped and the session is untouched.
        """
        self._state = begin_analysis(self._state)
        image = self._state.image
        try:
            result = await self._orchestrator.analyze(image.data, image.mime_type)
        except AnalysisFailed as exc:
            match self._is_current(image):
                case True:
                    self._state = fail(self._state, str(exc))
                    return self._state
                case False:
                    logger.info(MSG_STALE_RESULT)
                    return None
        except asyncio.CancelledError:
            if self._is_current(image):
                self._state = cancel_analysis(self._state)
            logger.info(MSG_ANALYSIS_CANCELLED)
            raise

        match self._is_current(image):
            case True:
                entry = HistoryEntry(
                    id=self._unique_entry_id(),
                    captured_at=self._clock(),
                    source_image=image,
                    result=result,
                )
                self._state = resolve(self._state, entry)
                return self._state
            case False:
                logger.info(MSG_STALE_RESULT)
                return None

    def _is_current(self, image: CapturedImage) -> bool:
        return self._state.phase is Phase.ANALYZING and self._state.image is image

    def _unique_entry_id(self) -> str:
        taken = set(map(lambda e: e.id, self._state.history))
        entry_id = self._id_factory()
        while entry_id in taken:
            entry_id = self._id_factory()
        return entry_id
