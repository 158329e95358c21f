"""AnalysisOrchestrator — one image in, one parsed result (or AnalysisFailed) out."""
import json
import logging
import re

from infectoscan.constants import (
    FIELD_DIAGNOSIS,
    FIELD_DIFFERENTIAL,
    FIELD_REASONING,
    FIELD_RECOMMENDATIONS,
    FIELD_URGENCY,
    MSG_ANALYSIS_DONE,
    MSG_ANALYSIS_ERROR,
    MSG_ANALYSIS_FAILED,
    MSG_ANALYSIS_REJECTED,
    MSG_ANALYSIS_STARTED,
    MSG_UNKNOWN_URGENCY,
    REASON_BAD_URGENCY,
    REASON_EMPTY,
    REASON_MISSING_FIELDS,
    REASON_NOT_JSON,
    REASON_NOT_OBJECT,
)
from infectoscan.errors import AnalysisFailed
from infectoscan.models import AnalysisRequest, AnalysisResult, Urgency
from infectoscan.vision.client import VisionClient

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


# ── pure helpers (module-level so tests can import them directly) ──────────────


def _strip_code_fence(text: str) -> str:
    match _FENCE.match(text.strip()):
        case None:
            return text.strip()
        case m:
            return m.group(1).strip()


def _is_str_list(value: object) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def parse_result(raw: str | None, strict_urgency: bool = False) -> AnalysisResult:
    """Parse a model reply into an AnalysisResult.

    Raises AnalysisFailed for an empty reply, invalid JSON, a non-object
    payload, or a missing/mistyped field. The urgency tag is passed through
    as-is unless strict_urgency is set.
    """
    text = _strip_code_fence(raw or "")
    match text:
        case "":
            raise AnalysisFailed(REASON_EMPTY)
        case _:
            pass

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AnalysisFailed(REASON_NOT_JSON) from exc

    match data:
        case dict():
            pass
        case _:
            raise AnalysisFailed(REASON_NOT_OBJECT)

    match data:
        case {
            "diagnosis": str() as diagnosis,
            "differentialDiagnosis": differential,
            "reasoning": str() as reasoning,
            "recommendations": recommendations,
            "urgency": str() as urgency,
        } if diagnosis.strip() and _is_str_list(differential) and _is_str_list(recommendations):
            pass
        case _:
            missing = [
                key
                for key in (FIELD_DIAGNOSIS, FIELD_DIFFERENTIAL, FIELD_REASONING, FIELD_RECOMMENDATIONS, FIELD_URGENCY)
                if key not in data
            ]
            raise AnalysisFailed(f"{REASON_MISSING_FIELDS}: {', '.join(missing) or 'wrong types'}")

    match (Urgency.parse(urgency), strict_urgency):
        case (None, True):
            raise AnalysisFailed(REASON_BAD_URGENCY % urgency)
        case (None, False):
            logger.warning(MSG_UNKNOWN_URGENCY, urgency)
        case _:
            pass

    return AnalysisResult(
        diagnosis=diagnosis,
        differential_diagnosis=tuple(differential),
        reasoning=reasoning,
        recommendations=tuple(recommendations),
        urgency=urgency,
    )


# ── orchestrator ──────────────────────────────────────────────────────────────


class AnalysisOrchestrator:
    """Issues one request per call to a vision backend and parses the reply.

    Holds no per-call state and does not guard against overlapping calls;
    callers keep at most one analysis in flight (see SessionController).
    """

    def __init__(self, vision_client: VisionClient, strict_urgency: bool = False) -> None:
        self._vision_client = vision_client
        self._strict_urgency = strict_urgency

    @property
    def vision_client(self) -> VisionClient:
        return self._vision_client

    async def analyze(self, image_bytes: bytes, mime_type: str) -> AnalysisResult:
        request = AnalysisRequest(image_bytes=image_bytes, mime_type=mime_type)
        logger.info(MSG_ANALYSIS_STARTED, len(image_bytes), mime_type)
        try:
            raw = await self._vision_client.analyze(request)
            result = parse_result(raw, strict_urgency=self._strict_urgency)
        except AnalysisFailed as exc:
            logger.warning(MSG_ANALYSIS_REJECTED, exc)
            raise AnalysisFailed(MSG_ANALYSIS_FAILED) from exc
        except Exception as exc:
            logger.exception(MSG_ANALYSIS_ERROR)
            raise AnalysisFailed(MSG_ANALYSIS_FAILED) from exc
        logger.info(MSG_ANALYSIS_DONE, result.urgency)
        return result
