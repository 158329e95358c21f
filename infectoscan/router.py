"""TriageRouter — per-sender sessions and command handling, transport-agnostic."""
import logging
from typing import NamedTuple, Optional

from infectoscan.analysis import AnalysisOrchestrator
from infectoscan.config import Config
from infectoscan.constants import (
    MSG_BUSY,
    MSG_HISTORY_CLEARED,
    MSG_NO_IMAGE,
    MSG_RESET,
    MSG_SHOW_UNKNOWN,
    MSG_SHOW_USAGE,
    MSG_STATUS,
)
from infectoscan.errors import InvalidTransition, UnknownHistoryEntry
from infectoscan.formatting import render_history, render_result
from infectoscan.models import CapturedImage
from infectoscan.session import Phase, SessionController, SessionState

logger = logging.getLogger(__name__)


class Reply(NamedTuple):
    text: str
    photo: Optional[bytes] = None


# ── pure helpers (module-level so tests can import them directly) ──────────────


def render_state(state: SessionState) -> str:
    """Reply text for the state an analysis left behind; empty when there is nothing to say."""
    match (state.phase, state.result, state.error):
        case (Phase.RESOLVED, result, _) if result is not None:
            return render_result(result)
        case (Phase.FAILED, _, str() as error):
            return error
        case _:
            return ""


def _render_outcome(state: Optional[SessionState]) -> str:
    """A dropped outcome (None) gets no reply; the newer request answers instead."""
    match state:
        case None:
            return ""
        case _:
            return render_state(state)


# ── router ────────────────────────────────────────────────────────────────────


class TriageRouter:
    """Routes images and commands from a sender to that sender's session."""

    def __init__(self, config: Config, orchestrator: AnalysisOrchestrator) -> None:
        self._config = config
        self._orchestrator = orchestrator
        self._sessions: dict[str, SessionController] = {}

    def session(self, sender: str) -> SessionController:
        match self._sessions.get(sender):
            case None:
                controller = SessionController(self._orchestrator)
                self._sessions[sender] = controller
                return controller
            case controller:
                return controller

    async def handle_image(self, sender: str, image: CapturedImage) -> str:
        session = self.session(sender)
        match session.is_busy:
            case True:
                return MSG_BUSY
            case False:
                session.select_image(image)
        return _render_outcome(await session.analyze())

    async def handle_retry_command(self, sender: str) -> str:
        session = self.session(sender)
        match (session.is_busy, session.state.image):
            case (True, _):
                return MSG_BUSY
            case (False, None):
                return MSG_NO_IMAGE
            case _:
                pass
        try:
            state = await session.analyze()
        except InvalidTransition as exc:
            logger.debug("Retry rejected: %s", exc)
            return MSG_BUSY
        return _render_outcome(state)

    def handle_reset_command(self, sender: str) -> str:
        self.session(sender).discard_image()
        return MSG_RESET

    def handle_history_command(self, sender: str) -> str:
        return render_history(self.session(sender).state.history)

    def handle_show_command(self, sender: str, args: str) -> Reply:
        session = self.session(sender)
        key = args.strip()
        match (key, session.is_busy):
            case ("", _):
                return Reply(MSG_SHOW_USAGE)
            case (_, True):
                return Reply(MSG_BUSY)
            case _:
                pass
        try:
            state = session.select_history(key)
        except UnknownHistoryEntry:
            return Reply(MSG_SHOW_UNKNOWN % key)
        return Reply(render_state(state), state.image.data if state.image else None)

    def handle_clear_command(self, sender: str) -> str:
        self.session(sender).clear_history()
        return MSG_HISTORY_CLEARED

    def handle_status_command(self) -> str:
        return MSG_STATUS % (
            self._config.vision_backend,
            self._config.vision_model,
            self._config.analysis_language,
            "on" if self._config.strict_urgency else "off",
        )
