"""TDD: session state machine tests written FIRST"""
import asyncio
import itertools
import json
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from infectoscan.analysis import AnalysisOrchestrator
from infectoscan.errors import AnalysisFailed, CaptureAccessDenied, InvalidTransition, UnknownHistoryEntry
from infectoscan.models import AnalysisResult, CapturedImage, HistoryEntry
from infectoscan.session import (
    Phase,
    SessionController,
    SessionState,
    begin_analysis,
    cancel_analysis,
    clear_history,
    discard_image,
    fail,
    resolve,
    select_history,
    select_image,
)

IMPETIGO = {
    "diagnosis": "Impetigo",
    "differentialDiagnosis": ["Cellulitis", "Eczema"],
    "reasoning": "...",
    "recommendations": ["Bacterial culture", "Topical antibiotic"],
    "urgency": "medium",
}
T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_image(data: bytes = b"jpeg-1") -> CapturedImage:
    return CapturedImage(data=data, mime_type="image/jpeg", source="file")


def make_result(diagnosis: str = "Impetigo") -> AnalysisResult:
    return AnalysisResult(
        diagnosis=diagnosis,
        differential_diagnosis=("Cellulitis",),
        reasoning="red crusted plaques",
        recommendations=("Culture",),
        urgency="medium",
    )


def make_controller(replies):
    """Controller whose vision backend answers with the given replies in order."""
    vision = MagicMock()
    vision.analyze = AsyncMock(side_effect=list(replies))
    ticks = itertools.count()
    ids = itertools.count(1)
    return SessionController(
        AnalysisOrchestrator(vision),
        clock=lambda: T0 + timedelta(minutes=next(ticks)),
        id_factory=lambda: f"id{next(ids)}",
    )


# ── pure transitions ──────────────────────────────────────────────────────────


def test_initial_state_is_idle():
    state = SessionState()

    assert state.phase is Phase.IDLE
    assert state.image is None
    assert state.history == ()
    assert state.camera_open is False


def test_transitions_return_new_state_values():
    state = SessionState()
    image = make_image()

    ready = select_image(state, image)

    assert state.phase is Phase.IDLE
    assert ready.phase is Phase.IMAGE_READY
    assert ready.image is image


def test_state_is_immutable():
    with pytest.raises(Exception):
        SessionState().phase = Phase.ANALYZING


def test_begin_analysis_requires_an_image():
    with pytest.raises(InvalidTransition):
        begin_analysis(SessionState())


def test_begin_analysis_rejects_reentry():
    analyzing = begin_analysis(select_image(SessionState(), make_image()))

    with pytest.raises(InvalidTransition):
        begin_analysis(analyzing)


def test_select_image_rejected_while_analyzing():
    analyzing = begin_analysis(select_image(SessionState(), make_image()))

    with pytest.raises(InvalidTransition):
        select_image(analyzing, make_image(b"other"))


def test_resolve_and_fail_require_analyzing():
    ready = select_image(SessionState(), make_image())
    entry = HistoryEntry(id="a", captured_at=T0, source_image=make_image(), result=make_result())

    with pytest.raises(InvalidTransition):
        resolve(ready, entry)
    with pytest.raises(InvalidTransition):
        fail(ready, "boom")


def test_new_image_after_resolve_returns_to_image_ready():
    image = make_image()
    analyzing = begin_analysis(select_image(SessionState(), image))
    entry = HistoryEntry(id="a", captured_at=T0, source_image=image, result=make_result())
    resolved = resolve(analyzing, entry)

    again = select_image(resolved, make_image(b"jpeg-2"))

    assert again.phase is Phase.IMAGE_READY
    assert again.result is None
    assert again.history == (entry,)


def test_retry_from_failed_is_allowed():
    failed = fail(begin_analysis(select_image(SessionState(), make_image())), "boom")

    retried = begin_analysis(failed)

    assert retried.phase is Phase.ANALYZING
    assert retried.error is None


def test_discard_keeps_history():
    image = make_image()
    entry = HistoryEntry(id="a", captured_at=T0, source_image=image, result=make_result())
    resolved = resolve(begin_analysis(select_image(SessionState(), image)), entry)

    idle = discard_image(resolved)

    assert idle.phase is Phase.IDLE
    assert idle.image is None
    assert idle.result is None
    assert idle.history == (entry,)


def test_clear_history_is_idempotent():
    image = make_image()
    entry = HistoryEntry(id="a", captured_at=T0, source_image=image, result=make_result())
    resolved = resolve(begin_analysis(select_image(SessionState(), image)), entry)

    once = clear_history(resolved)
    twice = clear_history(once)

    assert once.history == ()
    assert twice == once


def test_select_history_unknown_entry():
    with pytest.raises(UnknownHistoryEntry):
        select_history(SessionState(), "nope")


# ── SessionController ─────────────────────────────────────────────────────────


async def test_impetigo_scenario_appends_history_entry():
    controller = make_controller([json.dumps(IMPETIGO)])
    image = make_image()
    controller.select_image(image)

    state = await controller.analyze()

    assert state.phase is Phase.RESOLVED
    assert state.result == AnalysisResult(
        diagnosis="Impetigo",
        differential_diagnosis=("Cellulitis", "Eczema"),
        reasoning="...",
        recommendations=("Bacterial culture", "Topical antibiotic"),
        urgency="medium",
    )
    (entry,) = state.history
    assert entry.id == "id1"
    assert entry.captured_at == T0
    assert entry.source_image is image
    assert entry.result == state.result


async def test_empty_object_reply_fails_and_leaves_history_unchanged():
    controller = make_controller([json.dumps(IMPETIGO), "{}"])
    controller.select_image(make_image())
    await controller.analyze()

    controller.select_image(make_image(b"jpeg-2"))
    state = await controller.analyze()

    assert state.phase is Phase.FAILED
    assert state.result is None
    assert state.error
    assert len(state.history) == 1


async def test_history_is_most_recent_first():
    replies = list(map(lambda n: json.dumps({**IMPETIGO, "diagnosis": f"dx{n}"}), range(3)))
    controller = make_controller(replies)

    for n in range(3):
        controller.select_image(make_image(f"jpeg-{n}".encode()))
        await controller.analyze()

    history = controller.state.history
    assert [e.result.diagnosis for e in history] == ["dx2", "dx1", "dx0"]
    assert len({e.id for e in history}) == 3
    assert history[0].captured_at > history[-1].captured_at

    controller.clear_history()
    controller.clear_history()
    assert controller.state.history == ()


async def test_select_history_restores_result_and_image():
    replies = [json.dumps({**IMPETIGO, "diagnosis": "first"}), json.dumps({**IMPETIGO, "diagnosis": "second"})]
    controller = make_controller(replies)
    first_image = make_image(b"first-bytes")
    controller.select_image(first_image)
    first = (await controller.analyze()).result
    controller.select_image(make_image(b"second-bytes"))
    await controller.analyze()

    state = controller.select_history("id1")

    assert state.phase is Phase.RESOLVED
    assert state.result == first
    assert state.image == first_image
    assert state.image.data == b"first-bytes"


async def test_select_history_by_position():
    controller = make_controller([json.dumps(IMPETIGO), json.dumps({**IMPETIGO, "diagnosis": "later"})])
    controller.select_image(make_image(b"a"))
    await controller.analyze()
    controller.select_image(make_image(b"b"))
    await controller.analyze()

    assert controller.select_history("1").result.diagnosis == "later"
    assert controller.select_history("2").result.diagnosis == "Impetigo"
    with pytest.raises(UnknownHistoryEntry):
        controller.select_history("3")


async def test_transport_failure_sets_failed_state():
    controller = make_controller([ConnectionError("offline")])
    controller.select_image(make_image())

    state = await controller.analyze()

    assert state.phase is Phase.FAILED
    assert state.history == ()


async def test_analyze_without_image_is_rejected():
    controller = make_controller([])

    with pytest.raises(InvalidTransition):
        await controller.analyze()


async def test_concurrent_analyze_is_rejected_while_busy():
    gate = asyncio.Event()

    async def slow_reply(request):
        await gate.wait()
        return json.dumps(IMPETIGO)

    vision = MagicMock()
    vision.analyze = slow_reply
    controller = SessionController(AnalysisOrchestrator(vision))
    controller.select_image(make_image())

    task = asyncio.create_task(controller.analyze())
    await asyncio.sleep(0)
    assert controller.is_busy
    with pytest.raises(InvalidTransition):
        await controller.analyze()

    gate.set()
    state = await task
    assert state.phase is Phase.RESOLVED
    assert len(state.history) == 1


async def test_result_for_discarded_image_is_dropped():
    gate = asyncio.Event()

    async def slow_reply(request):
        await gate.wait()
        return json.dumps(IMPETIGO)

    vision = MagicMock()
    vision.analyze = slow_reply
    controller = SessionController(AnalysisOrchestrator(vision))
    controller.select_image(make_image())

    task = asyncio.create_task(controller.analyze())
    await asyncio.sleep(0)
    controller.discard_image()
    gate.set()
    assert await task is None
    assert controller.state.phase is Phase.IDLE
    assert controller.state.result is None
    assert controller.state.history == ()


async def test_failure_for_discarded_image_is_dropped():
    gate = asyncio.Event()

    async def slow_reply(request):
        await gate.wait()
        return "not json"

    vision = MagicMock()
    vision.analyze = slow_reply
    controller = SessionController(AnalysisOrchestrator(vision))
    controller.select_image(make_image())

    task = asyncio.create_task(controller.analyze())
    await asyncio.sleep(0)
    controller.discard_image()
    gate.set()

    assert await task is None
    assert controller.state.phase is Phase.IDLE
    assert controller.state.error is None


async def test_cancelled_analysis_returns_to_image_ready():
    never = asyncio.Event()

    async def hanging_reply(request):
        await never.wait()

    vision = MagicMock()
    vision.analyze = hanging_reply
    controller = SessionController(AnalysisOrchestrator(vision))
    image = make_image()
    controller.select_image(image)

    task = asyncio.create_task(controller.analyze())
    await asyncio.sleep(0)
    assert controller.is_busy
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert controller.state.phase is Phase.IMAGE_READY
    assert controller.state.image is image
    assert not controller.is_busy


def test_cancel_analysis_requires_analyzing():
    with pytest.raises(InvalidTransition):
        cancel_analysis(SessionState())


async def test_history_ids_are_unique_even_when_factory_repeats():
    vision = MagicMock()
    vision.analyze = AsyncMock(side_effect=[json.dumps(IMPETIGO), json.dumps(IMPETIGO)])
    ids = iter(["dup", "dup", "fresh"])
    controller = SessionController(AnalysisOrchestrator(vision), id_factory=lambda: next(ids))

    controller.select_image(make_image(b"1"))
    await controller.analyze()
    controller.select_image(make_image(b"2"))
    state = await controller.analyze()

    assert [e.id for e in state.history] == ["fresh", "dup"]


async def test_retry_after_failure_uses_same_image():
    controller = make_controller(["not json", json.dumps(IMPETIGO)])
    image = make_image()
    controller.select_image(image)
    assert (await controller.analyze()).phase is Phase.FAILED

    state = await controller.analyze()

    assert state.phase is Phase.RESOLVED
    assert state.history[0].source_image is image


# ── capture ───────────────────────────────────────────────────────────────────


def test_capture_selects_provider_image():
    controller = make_controller([])
    provider = MagicMock()
    provider.capture.return_value = make_image(b"frame")

    state = controller.capture(provider)

    assert state.phase is Phase.IMAGE_READY
    assert state.image.data == b"frame"
    assert state.camera_open is False


def test_capture_access_denied_sets_error_and_closes_camera():
    controller = make_controller([])
    provider = MagicMock()
    provider.capture.side_effect = CaptureAccessDenied("denied")

    with pytest.raises(CaptureAccessDenied):
        controller.capture(provider)

    assert controller.state.phase is Phase.IDLE
    assert controller.state.camera_open is False
    assert controller.state.error


def test_capture_other_failure_closes_camera():
    controller = make_controller([])
    provider = MagicMock()
    provider.capture.side_effect = RuntimeError("frame capture failed")

    with pytest.raises(RuntimeError):
        controller.capture(provider)

    assert controller.state.camera_open is False
