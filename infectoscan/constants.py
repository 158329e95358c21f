"""All magic values live here — no inline literals anywhere else."""

# Telegram typing indicator re-send interval (seconds).
# The TYPING action expires after ~5 s, so we refresh every 4 s.
TELEGRAM_TYPING_INTERVAL: float = 4.0
TELEGRAM_MAX_MESSAGE_LENGTH = 4096

# Vision backends
BACKEND_GEMINI = "gemini"
BACKEND_CLAUDE = "claude"
BACKEND_OPENAI = "openai"
BACKEND_ORDER = (BACKEND_GEMINI, BACKEND_CLAUDE, BACKEND_OPENAI)

GEMINI_VISION_MODEL = "gemini-3.1-pro-preview"
CLAUDE_VISION_MODEL = "claude-opus-4-6"
OPENAI_VISION_MODEL = "gpt-4o"
DEFAULT_VISION_MODELS = {
    BACKEND_GEMINI: GEMINI_VISION_MODEL,
    BACKEND_CLAUDE: CLAUDE_VISION_MODEL,
    BACKEND_OPENAI: OPENAI_VISION_MODEL,
}
CLAUDE_MAX_TOKENS = 4096
JSON_MIME_TYPE = "application/json"

DEFAULT_ANALYSIS_LANGUAGE = "Russian"

# Prompt template. {language} is filled from ANALYSIS_LANGUAGE.
SYSTEM_INSTRUCTION = """You are a highly qualified AI assistant for infectious disease physicians.
Your task is to analyze clinical photographs of potential infections (skin lesions, rashes, wounds, etc.) and provide a detailed medical assessment.

Guidelines:
1. Professional tone: use precise medical terminology in {language}.
2. Structure: give the primary suspected diagnosis, a list of differential diagnoses, detailed clinical reasoning based on the visual findings, and recommended next steps (tests, precautions).
3. Visual analysis: describe what you see (erythema, exudate, borders, distribution, etc.).
4. Urgency: classify the urgency of the case.
5. Disclaimer: always remind the user that this is an AI-assisted tool and the final clinical decision rests with the specialist.

Output format (JSON):
{{
  "diagnosis": "Primary suspected diagnosis",
  "differentialDiagnosis": ["Differential 1", "Differential 2", "Differential 3"],
  "reasoning": "Detailed explanation of the visual findings and the medical logic.",
  "recommendations": ["Recommended lab test", "Clinical action", "Patient advice"],
  "urgency": "low | medium | high | critical"
}}

If the image is unrelated to a medical infection or its quality is too low, state this clearly in the diagnosis field and ask for a better image. All text fields must be in {language}."""

ANALYSIS_PROMPT = (
    "Analyze this clinical image for potential infectious diseases. "
    "Provide your assessment in the specified JSON format in {language}."
)

# Result JSON keys
FIELD_DIAGNOSIS = "diagnosis"
FIELD_DIFFERENTIAL = "differentialDiagnosis"
FIELD_REASONING = "reasoning"
FIELD_RECOMMENDATIONS = "recommendations"
FIELD_URGENCY = "urgency"

# Capture
DEFAULT_CAMERA_INDEX = 0
CAMERA_JPEG_QUALITY = 85
CAMERA_MIME_TYPE = "image/jpeg"
TELEGRAM_PHOTO_MIME_TYPE = "image/jpeg"
SOURCE_FILE = "file"
SOURCE_CAMERA = "camera"
SOURCE_TELEGRAM = "telegram"
HISTORY_ID_LENGTH = 9

# Log messages
MSG_BOT_STARTING = "Starting InfectoScan bot…"
MSG_BLOCKED_CHAT = "Blocked update from chat_id: %s"
MSG_SEND_OK = "✓ Sent (%.1fs)"
MSG_SEND_FAIL = "✗ Send failed (%.1fs)"
MSG_USING_BACKEND = "Vision backend: %s (%s)"
MSG_ANALYSIS_STARTED = "Analyzing %d bytes (%s)"
MSG_ANALYSIS_DONE = "Analysis done: urgency=%s"
MSG_ANALYSIS_REJECTED = "Analysis reply rejected: %s"
MSG_ANALYSIS_ERROR = "Analysis request failed"
MSG_UNKNOWN_URGENCY = "Unrecognized urgency tag passed through: %r"
MSG_STALE_RESULT = "Dropping analysis outcome for a discarded image"
MSG_ANALYSIS_CANCELLED = "Analysis cancelled; image kept for a retry"
MSG_CAMERA_RELEASED = "Camera %s released"

# Parse failure reasons (logged, never shown to the user)
REASON_EMPTY = "empty response"
REASON_NOT_JSON = "response is not valid JSON"
REASON_NOT_OBJECT = "response is not a JSON object"
REASON_MISSING_FIELDS = "required fields missing or mistyped"
REASON_BAD_URGENCY = "urgency %r is not one of low, medium, high, critical"

# User-facing messages
MSG_ANALYSIS_FAILED = "Image analysis failed. Please try again."
MSG_CAMERA_DENIED = "Could not access the camera. Check the permissions."
MSG_NOT_AN_IMAGE = "Only image files can be analyzed."
MSG_BUSY = "An analysis is already running — please wait for it to finish."
MSG_NO_IMAGE = "Send a photo first."
MSG_RESET = "Image discarded."
MSG_HISTORY_EMPTY = "History is empty."
MSG_HISTORY_HEADER = "Scan history (%d):"
MSG_HISTORY_LINE = "%d. [%s] %s — %s (id %s)"
MSG_HISTORY_CLEARED = "History cleared."
MSG_SHOW_USAGE = "Usage: /show <number or id> — see /history"
MSG_SHOW_UNKNOWN = "No history entry %s — see /history"
MSG_DISCLAIMER = (
    "AI-assisted assessment. The final clinical decision rests with the specialist."
)

RESULT_DIAGNOSIS = "Suspected diagnosis"
RESULT_URGENCY = "Urgency"
RESULT_DIFFERENTIAL = "Differential diagnosis"
RESULT_REASONING = "Clinical reasoning"
RESULT_RECOMMENDATIONS = "Recommendations"

URGENCY_LABELS = {
    "low": "Low",
    "medium": "Medium",
    "high": "High",
    "critical": "Critical",
}
URGENCY_STYLES = {
    "low": "green",
    "medium": "yellow",
    "high": "dark_orange",
    "critical": "bold red",
}
URGENCY_DEFAULT_STYLE = "grey50"

HISTORY_TIME_FORMAT = "%Y-%m-%d %H:%M"

CMD_RETRY = "retry"
CMD_RESET = "reset"
CMD_HISTORY = "history"
CMD_SHOW = "show"
CMD_CLEAR = "clear"
CMD_STATUS = "status"
CMD_HELP = "help"
CMD_START = "start"

MSG_STATUS = (
    "Status\n"
    "  Backend   : %s\n"
    "  Model     : %s\n"
    "  Language  : %s\n"
    "  Strict urgency: %s\n"
)

MSG_HELP = (
    "InfectoScan — clinical photo triage assistant\n"
    "\n"
    "Send a photo (or an image file) of a lesion, rash or wound and get a\n"
    "structured assessment: diagnosis, differentials, reasoning,\n"
    "recommendations and urgency.\n"
    "\n"
    "Commands:\n"
    "  /help          — show this message\n"
    "  /retry         — analyze the current image again\n"
    "  /reset         — discard the current image\n"
    "  /history       — list previous scans\n"
    "  /show <n|id>   — reopen a scan from history\n"
    "  /clear         — clear the history\n"
    "  /status        — current backend and model\n"
    "\n"
    + MSG_DISCLAIMER
)

# CLI
CLI_DESCRIPTION = "Analyze a clinical photo with a hosted multimodal model."
EXIT_OK = 0
EXIT_FAILED = 1
