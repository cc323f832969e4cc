"""Factory for the LLM client that backs the classify/generate capabilities."""

from config.config import Config, ModelType
from utils.logger import get_logger

from .base_client import BaseAIClient

logger = get_logger(__name__)


def create_llm_client(config: Config) -> BaseAIClient:
    """
    Build the configured LLM client.

    Raises:
        ValueError: If the provider is unknown or its API key is not set
    """
    provider = (config.llm_provider or "").lower().strip()

    if provider == ModelType.OPENAI.value:
        from api.openai_client import OpenAIClient

        if not config.openai_api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables")
        client = OpenAIClient(
            api_key=config.openai_api_key,
            model_name=config.generation_model,
            classifier_model=config.classifier_model,
            timeout_s=config.llm_timeout_s,
        )

    elif provider == ModelType.GEMINI.value:
        from api.google_gemini_client import GeminiClient

        if not config.gemini_api_key:
            raise ValueError("GOOGLE_GEMINI_API_KEY not found in environment variables")
        client = GeminiClient(
            api_key=config.gemini_api_key,
            model_name=config.generation_model,
            classifier_model=config.classifier_model,
            timeout_s=config.llm_timeout_s,
        )

    else:
        raise ValueError(f"Unsupported LLM_PROVIDER: {provider}. Must be 'openai' or 'gemini'")

    logger.info(f"LLM client initialized: {config.get_model_info()}")
    return client
