"""Gemini gateway: one outbound call per prompt, raw text back."""
import logging

import google.generativeai as genai
from google.generativeai.types import GenerationConfig

from assessor.core.config import Settings, get_settings
from assessor.core.errors import UpstreamAIError
from assessor.services.prompts import SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)


class GeminiGateway:
    """Sends a prompt to Gemini and returns the first text completion.

    With `structured` on, the request asks for JSON mode
    (`response_mime_type="application/json"`); the reply still goes through the
    extractor, which handles both clean JSON and fenced/prose-wrapped text.
    """

    def __init__(self, settings: Settings):
        self.model_name = settings.gemini_model
        self.temperature = settings.llm_temperature
        self.structured = settings.llm_structured_output
        self._api_key = settings.gemini_api_key
        self._model = None

    def _get_model(self):
        if self._model is None:
            if not self._api_key:
                raise UpstreamAIError("GEMINI_API_KEY is not set")
            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(self.model_name, system_instruction=SYSTEM_INSTRUCTION)
        return self._model

    async def generate(self, prompt: str) -> str:
        model = self._get_model()
        config = GenerationConfig(
            temperature=self.temperature,
            response_mime_type="application/json" if self.structured else None,
        )
        try:
            response = await model.generate_content_async(prompt, generation_config=config)
            if not response.parts:
                raise ValueError("AI model returned an empty response.")
            text = response.text
        except Exception as e:
            logger.error("Gemini call failed (%s): %s", self.model_name, e)
            raise UpstreamAIError(str(e)) from e
        if not text or not text.strip():
            raise UpstreamAIError("AI model returned an empty response.")
        return text


_gateway: GeminiGateway | None = None


def get_llm_gateway() -> GeminiGateway:
    """FastAPI dependency returning the process-wide gateway."""
    global _gateway
    if _gateway is None:
        _gateway = GeminiGateway(get_settings())
    return _gateway
