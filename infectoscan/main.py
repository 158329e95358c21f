"""Entry point — wires Config → vision backend → TriageRouter → TelegramClient."""
import logging

from rich.logging import RichHandler

from infectoscan.analysis import AnalysisOrchestrator
from infectoscan.config import Config
from infectoscan.constants import MSG_BOT_STARTING, MSG_USING_BACKEND
from infectoscan.router import TriageRouter
from infectoscan.telegram.client import TelegramClient
from infectoscan.vision.claude import ClaudeVisionClient
from infectoscan.vision.client import VisionClient
from infectoscan.vision.gemini import GeminiVisionClient
from infectoscan.vision.openai import OpenAIVisionClient

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    list(map(root.removeHandler, root.handlers[:]))
    root.addHandler(RichHandler(rich_tracebacks=True))


def build_vision_client(config: Config) -> VisionClient:
    match config.vision_backend:
        case "gemini":
            cls = GeminiVisionClient
        case "claude":
            cls = ClaudeVisionClient
        case "openai":
            cls = OpenAIVisionClient
        case other:
            raise ValueError(f"Unknown vision backend: {other}")
    return cls(config.vision_api_key, config.vision_model, config.analysis_language)


def build_orchestrator(config: Config) -> AnalysisOrchestrator:
    vision = build_vision_client(config)
    logger.info(MSG_USING_BACKEND, vision.name, vision.model)
    return AnalysisOrchestrator(vision, strict_urgency=config.strict_urgency)


def main() -> None:
    config = Config.from_env()
    setup_logging(config.log_level)
    token, chat_id = config.require_telegram()

    logger.info(MSG_BOT_STARTING)
    router = TriageRouter(config, build_orchestrator(config))
    TelegramClient(token, chat_id).run(router)


if __name__ == "__main__":
    main()
