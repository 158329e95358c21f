from dataclasses import dataclass
from typing import Optional
import os
from dotenv import load_dotenv

from infectoscan.constants import (
    BACKEND_CLAUDE,
    BACKEND_GEMINI,
    BACKEND_OPENAI,
    BACKEND_ORDER,
    DEFAULT_ANALYSIS_LANGUAGE,
    DEFAULT_CAMERA_INDEX,
    DEFAULT_VISION_MODELS,
)

_TRUTHY = ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    log_level: str
    gemini_api_key: Optional[str]
    anthropic_api_key: Optional[str]
    openai_api_key: Optional[str]
    vision_backend: str
    vision_model: str
    analysis_language: str
    strict_urgency: bool
    camera_index: int
    telegram_bot_token: Optional[str] = None
    allowed_chat_id: Optional[str] = None

    @property
    def vision_api_key(self) -> str:
        keys = {
            BACKEND_GEMINI: self.gemini_api_key,
            BACKEND_CLAUDE: self.anthropic_api_key,
            BACKEND_OPENAI: self.openai_api_key,
        }
        return keys[self.vision_backend] or ""

    @classmethod
    def from_env(cls) -> "Config":
        load_dotenv()

        log_level = os.getenv("LOG_LEVEL", "INFO")
        gemini_api_key = os.getenv("GEMINI_API_KEY") or None
        anthropic_api_key = os.getenv("ANTHROPIC_API_KEY") or None
        openai_api_key = os.getenv("OPENAI_API_KEY") or None
        backend = (os.getenv("VISION_BACKEND") or "").strip().lower() or None
        model = os.getenv("VISION_MODEL") or None
        language = os.getenv("ANALYSIS_LANGUAGE") or DEFAULT_ANALYSIS_LANGUAGE
        strict = os.getenv("STRICT_URGENCY", "false").strip().lower() in _TRUTHY
        camera_index = os.getenv("CAMERA_INDEX", str(DEFAULT_CAMERA_INDEX))
        token = os.getenv("TELEGRAM_BOT_TOKEN") or None
        chat_id = os.getenv("ALLOWED_CHAT_ID") or None

        return cls._validate(
            log_level=log_level,
            gemini_api_key=gemini_api_key,
            anthropic_api_key=anthropic_api_key,
            openai_api_key=openai_api_key,
            vision_backend=backend,
            vision_model=model,
            analysis_language=language,
            strict_urgency=strict,
            camera_index=camera_index,
            telegram_bot_token=token,
            allowed_chat_id=chat_id,
        )

    @staticmethod
    def _validate(
        log_level: str,
        gemini_api_key: Optional[str],
        anthropic_api_key: Optional[str],
        openai_api_key: Optional[str],
        vision_backend: Optional[str],
        vision_model: Optional[str],
        analysis_language: str,
        strict_urgency: bool,
        camera_index: str,
        telegram_bot_token: Optional[str],
        allowed_chat_id: Optional[str],
    ) -> "Config":
        keys = {
            BACKEND_GEMINI: gemini_api_key,
            BACKEND_CLAUDE: anthropic_api_key,
            BACKEND_OPENAI: openai_api_key,
        }
        configured = tuple(filter(lambda b: keys[b], BACKEND_ORDER))

        match (vision_backend, configured):
            case (_, ()):
                raise ValueError(
                    "One of GEMINI_API_KEY, ANTHROPIC_API_KEY or OPENAI_API_KEY must be set in .env"
                )
            case (None, (first, *_)):
                backend = first
            case (str() as b, _) if b not in BACKEND_ORDER:
                raise ValueError(
                    f"VISION_BACKEND must be one of {', '.join(BACKEND_ORDER)}, got {b!r}"
                )
            case (str() as b, _) if b not in configured:
                raise ValueError(f"VISION_BACKEND={b} has no API key set in .env")
            case (str() as b, _):
                backend = b

        try:
            index = int(camera_index)
        except ValueError:
            raise ValueError(f"CAMERA_INDEX must be an integer, got {camera_index!r}") from None

        return Config(
            log_level=log_level,
            gemini_api_key=gemini_api_key,
            anthropic_api_key=anthropic_api_key,
            openai_api_key=openai_api_key,
            vision_backend=backend,
            vision_model=vision_model or DEFAULT_VISION_MODELS[backend],
            analysis_language=analysis_language,
            strict_urgency=strict_urgency,
            camera_index=index,
            telegram_bot_token=telegram_bot_token,
            allowed_chat_id=allowed_chat_id,
        )

    def require_telegram(self) -> tuple[str, str]:
        """Bot credentials, or ValueError naming the missing variable."""
        match (self.telegram_bot_token, self.allowed_chat_id):
            case (None | "", _):
                raise ValueError("TELEGRAM_BOT_TOKEN must be set in .env")
            case (_, None | ""):
                raise ValueError("ALLOWED_CHAT_ID must be set in .env")
            case (token, chat_id):
                return token, chat_id
