"""VisionClient — abstract base for image analysis backends."""
from abc import ABC, abstractmethod

from infectoscan.constants import ANALYSIS_PROMPT, DEFAULT_ANALYSIS_LANGUAGE, SYSTEM_INSTRUCTION
from infectoscan.models import AnalysisRequest


class VisionClient(ABC):
    name: str = ""

    def __init__(self, api_key: str, model: str, language: str = DEFAULT_ANALYSIS_LANGUAGE) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language

    @property
    def model(self) -> str:
        return self._model

    @property
    def system_instruction(self) -> str:
        return SYSTEM_INSTRUCTION.format(language=self._language)

    @property
    def prompt(self) -> str:
        return ANALYSIS_PROMPT.format(language=self._language)

    @abstractmethod
    async def analyze(self, request: AnalysisRequest) -> str:
        """Send the image with the fixed prompt and return the raw reply text. Raises on failure."""
        ...
