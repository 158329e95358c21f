"""Plain-text rendering of results and history for chat replies."""
from infectoscan.constants import (
    HISTORY_TIME_FORMAT,
    MSG_DISCLAIMER,
    MSG_HISTORY_EMPTY,
    MSG_HISTORY_HEADER,
    MSG_HISTORY_LINE,
    RESULT_DIAGNOSIS,
    RESULT_DIFFERENTIAL,
    RESULT_REASONING,
    RESULT_RECOMMENDATIONS,
    RESULT_URGENCY,
    URGENCY_LABELS,
)
from infectoscan.models import AnalysisResult, HistoryEntry


def urgency_label(urgency: str) -> str:
    """Display label for a tier; unknown tags are shown verbatim."""
    return URGENCY_LABELS.get(urgency.strip().lower(), urgency)


def _bullets(items: tuple[str, ...]) -> list[str]:
    return list(map(lambda item: f"• {item}", items)) or ["—"]


def render_result(result: AnalysisResult) -> str:
    lines = [
        f"{RESULT_URGENCY}: {urgency_label(result.urgency)}",
        "",
        f"{RESULT_DIAGNOSIS}:",
        result.diagnosis,
        "",
        f"{RESULT_DIFFERENTIAL}:",
        *_bullets(result.differential_diagnosis),
        "",
        f"{RESULT_REASONING}:",
        result.reasoning.strip(),
        "",
        f"{RESULT_RECOMMENDATIONS}:",
        *_bullets(result.recommendations),
        "",
        MSG_DISCLAIMER,
    ]
    return "\n".join(lines)


def render_history(history: tuple[HistoryEntry, ...]) -> str:
    match history:
        case ():
            return MSG_HISTORY_EMPTY
        case entries:
            lines = [MSG_HISTORY_HEADER % len(entries)]
            lines += list(map(
                lambda pair: MSG_HISTORY_LINE % (
                    pair[0],
                    pair[1].captured_at.strftime(HISTORY_TIME_FORMAT),
                    urgency_label(pair[1].result.urgency),
                    pair[1].result.diagnosis,
                    pair[1].id,
                ),
                enumerate(entries, start=1),
            ))
            return "\n".join(lines)
