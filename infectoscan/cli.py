"""Command-line entry point — analyze one image file or one camera frame."""
import argparse
import asyncio
from typing import Optional, Sequence

from rich.console import Console, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.text import Text

from infectoscan.capture.camera import CameraCaptureProvider
from infectoscan.capture.file import FileCaptureProvider
from infectoscan.config import Config
from infectoscan.constants import (
    CLI_DESCRIPTION,
    EXIT_FAILED,
    EXIT_OK,
    MSG_ANALYSIS_FAILED,
    MSG_DISCLAIMER,
    RESULT_DIAGNOSIS,
    RESULT_DIFFERENTIAL,
    RESULT_REASONING,
    RESULT_RECOMMENDATIONS,
    RESULT_URGENCY,
    URGENCY_DEFAULT_STYLE,
    URGENCY_STYLES,
)
from infectoscan.errors import CaptureAccessDenied
from infectoscan.formatting import urgency_label
from infectoscan.main import build_orchestrator, setup_logging
from infectoscan.models import AnalysisResult
from infectoscan.session import Phase, SessionController, SessionState


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="infectoscan", description=CLI_DESCRIPTION)
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("image", nargs="?", help="path to an image file")
    source.add_argument("--camera", action="store_true", help="grab one frame from a camera")
    parser.add_argument("--camera-index", type=int, default=None, help="camera device (default: CAMERA_INDEX)")
    return parser


def _markdown_list(items: tuple[str, ...]) -> str:
    return "\n".join(map(lambda item: f"- {item}", items)) or "—"


def render_result_panel(result: AnalysisResult) -> Panel:
    style = URGENCY_STYLES.get(result.urgency.strip().lower(), URGENCY_DEFAULT_STYLE)
    body = Group(
        Text(f"{RESULT_DIAGNOSIS}: ", style="bold").append(result.diagnosis, style="bold cyan"),
        Text(""),
        Text(RESULT_DIFFERENTIAL, style="bold"),
        Markdown(_markdown_list(result.differential_diagnosis)),
        Text(""),
        Text(RESULT_REASONING, style="bold"),
        Markdown(result.reasoning),
        Text(""),
        Text(RESULT_RECOMMENDATIONS, style="bold"),
        Markdown(_markdown_list(result.recommendations)),
        Text(""),
        Text(MSG_DISCLAIMER, style="italic dim"),
    )
    title = f"{RESULT_URGENCY}: {urgency_label(result.urgency)}"
    return Panel(body, title=title, border_style=style)


async def run(args: argparse.Namespace, session: SessionController, config: Config, console: Console) -> int:
    try:
        match args.camera:
            case True:
                index = config.camera_index if args.camera_index is None else args.camera_index
                session.capture(CameraCaptureProvider(index))
            case False:
                session.select_image(FileCaptureProvider(args.image).capture())
    except (CaptureAccessDenied, OSError, ValueError, RuntimeError) as exc:
        console.print(str(exc), style="red", markup=False)
        return EXIT_FAILED

    with console.status("Analyzing…"):
        state = await session.analyze()

    match state:
        case SessionState(phase=Phase.RESOLVED, result=AnalysisResult() as result):
            console.print(render_result_panel(result))
            return EXIT_OK
        case SessionState(error=str() as error):
            console.print(error, style="red", markup=False)
            return EXIT_FAILED
        case _:
            console.print(MSG_ANALYSIS_FAILED, style="red", markup=False)
            return EXIT_FAILED


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = Config.from_env()
    setup_logging(config.log_level)
    session = SessionController(build_orchestrator(config))
    return asyncio.run(run(args, session, config, Console()))


if __name__ == "__main__":
    raise SystemExit(main())
