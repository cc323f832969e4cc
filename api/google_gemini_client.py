from google import genai
from google.genai import types

from models.errors import LLMClientError
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class GeminiClient(BaseAIClient):
    """
    Google Gemini client (google.genai package) exposing the classify/generate capabilities.
    """

    provider_name = "gemini"

    def __init__(self, api_key: str, model_name: str = "gemini-2.5-flash-lite", **kwargs):
        """
        Initialize the Gemini client.

        Args:
            api_key: The Google Gemini API key
            model_name: Model used for answer generation
            **kwargs: classifier_model, timeout_s
        """
        super().__init__(api_key, model_name=model_name, **kwargs)

        if not api_key:
            raise ValueError("API key is required for Gemini")

        # HttpOptions.timeout is in milliseconds
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(self.timeout_s * 1000)),
        )

    def get_completion(self, prompt: str, **kwargs) -> str:
        model_name = kwargs.get("model") or self.model_name
        temperature = kwargs.get("temperature", 0.1)
        max_output_tokens = kwargs.get("max_tokens", 1000)

        try:
            response = self.client.models.generate_content(
                model=model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    max_output_tokens=max_output_tokens,
                ),
            )
        except Exception as e:
            raise LLMClientError(self.provider_name, f"{type(e).__name__}: {e}") from e

        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise LLMClientError(self.provider_name, f"empty completion from {model_name}")

        usage_metadata = getattr(response, "usage_metadata", None)
        logger.debug(
            "Gemini completion",
            extra={
                "extra_fields": {
                    "model": model_name,
                    "total_tokens": getattr(usage_metadata, "total_token_count", None),
                }
            },
        )
        return text
