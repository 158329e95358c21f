"""OpenAIVisionClient — OpenAI GPT-4o vision backend."""
import base64

from openai import AsyncOpenAI

from infectoscan.constants import BACKEND_OPENAI
from infectoscan.models import AnalysisRequest
from infectoscan.vision.client import VisionClient


class OpenAIVisionClient(VisionClient):
    name = BACKEND_OPENAI

    async def analyze(self, request: AnalysisRequest) -> str:
        client = AsyncOpenAI(api_key=self._api_key)
        image_data = base64.standard_b64encode(request.image_bytes).decode()
        response = await client.chat.completions.create(
            model=self._model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": self.system_instruction},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:{request.mime_type};base64,{image_data}"},
                        },
                        {"type": "text", "text": self.prompt},
                    ],
                },
            ],
        )
        content = response.choices[0].message.content
        return content.strip() if content else ""
