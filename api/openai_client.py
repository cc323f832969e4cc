import openai

from models.errors import LLMClientError
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


class OpenAIClient(BaseAIClient):
    """
    OpenAI chat-completions client exposing the classify/generate capabilities.
    """

    provider_name = "openai"

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini", **kwargs):
        """
        Initialize the OpenAI client.

        Args:
            api_key: The OpenAI API key
            model_name: Model used for answer generation (default: gpt-4o-mini)
            **kwargs: classifier_model, timeout_s, max_retries
        """
        super().__init__(api_key, model_name=model_name, **kwargs)
        self.client = openai.OpenAI(
            api_key=api_key,
            timeout=self.timeout_s,
            max_retries=kwargs.get("max_retries", 2),
        )

    def get_completion(self, prompt: str, **kwargs) -> str:
        model = kwargs.get("model") or self.model_name
        temperature = kwargs.get("temperature", 0.1)
        max_tokens = kwargs.get("max_tokens", 1000)

        try:
            response = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as e:
            raise LLMClientError(self.provider_name, f"request timed out: {e}") from e
        except openai.OpenAIError as e:
            raise LLMClientError(self.provider_name, f"{type(e).__name__}: {e}") from e

        choices = getattr(response, "choices", None) or []
        text = choices[0].message.content if choices else None
        if not text or not text.strip():
            raise LLMClientError(self.provider_name, f"empty completion from {model}")

        usage = getattr(response, "usage", None)
        logger.debug(
            "OpenAI completion",
            extra={
                "extra_fields": {
                    "model": model,
                    "total_tokens": getattr(usage, "total_tokens", None),
                }
            },
        )
        return text
