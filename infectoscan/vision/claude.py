"""ClaudeVisionClient — Anthropic Claude vision backend."""
import base64

from anthropic import AsyncAnthropic

from infectoscan.constants import BACKEND_CLAUDE, CLAUDE_MAX_TOKENS
from infectoscan.models import AnalysisRequest
from infectoscan.vision.client import VisionClient


class ClaudeVisionClient(VisionClient):
    name = BACKEND_CLAUDE

    async def analyze(self, request: AnalysisRequest) -> str:
        client = AsyncAnthropic(api_key=self._api_key)
        image_data = base64.standard_b64encode(request.image_bytes).decode()
        message = await client.messages.create(
            model=self._model,
            max_tokens=CLAUDE_MAX_TOKENS,
            system=self.system_instruction,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": request.mime_type,
                                "data": image_data,
                            },
                        },
                        {"type": "text", "text": self.prompt},
                    ],
                }
            ],
        )
        # No JSON mode here; the parser unwraps code fences.
        return message.content[0].text.strip()
