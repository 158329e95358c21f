"""GeminiVisionClient — Google Gemini vision backend."""
from google import genai
from google.genai import types

from infectoscan.constants import BACKEND_GEMINI, JSON_MIME_TYPE
from infectoscan.models import AnalysisRequest
from infectoscan.vision.client import VisionClient


class GeminiVisionClient(VisionClient):
    name = BACKEND_GEMINI

    async def analyze(self, request: AnalysisRequest) -> str:
        client = genai.Client(api_key=self._api_key)
        response = await client.aio.models.generate_content(
            model=self._model,
            contents=[
                types.Part.from_bytes(data=request.image_bytes, mime_type=request.mime_type),
                self.prompt,
            ],
            config=types.GenerateContentConfig(
                system_instruction=self.system_instruction,
                response_mime_type=JSON_MIME_TYPE,
            ),
        )
        return response.text or ""
