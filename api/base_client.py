from abc import ABC, abstractmethod


class BaseAIClient(ABC):
    """
    Abstract base class for LLM clients.

    The orchestrator only needs two capabilities, ``classify`` and ``generate``;
    both are thin presets over ``get_completion``. Clients raise
    ``LLMClientError`` on any provider failure instead of returning partial output.
    """

    provider_name = "unknown"

    CLASSIFY_TEMPERATURE = 0.0
    CLASSIFY_MAX_TOKENS = 100
    GENERATE_TEMPERATURE = 0.1
    GENERATE_MAX_TOKENS = 1000

    @abstractmethod
    def __init__(self, api_key: str, **kwargs):
        """
        Initialize the AI client.

        Args:
            api_key: API key for the AI service
            **kwargs: Additional model-specific parameters
                - model_name: model used by ``generate``
                - classifier_model: model used by ``classify`` (defaults to model_name)
                - timeout_s: per-request timeout in seconds
        """
        self.api_key = api_key
        self.model_name = kwargs.get("model_name")
        self.classifier_model = kwargs.get("classifier_model") or self.model_name
        self.timeout_s = kwargs.get("timeout_s", 30.0)

    @abstractmethod
    def get_completion(self, prompt: str, **kwargs) -> str:
        """
        Get a completion from the model.

        Args:
            prompt: The input prompt to send to the model
            **kwargs: model, temperature, max_tokens overrides

        Returns:
            The generated text (never empty)

        Raises:
            LLMClientError: on network, timeout, provider or empty-output failures
        """

    def classify(self, prompt: str) -> str:
        """Short, deterministic completion used for verdicts and keyword extraction."""
        return self.get_completion(
            prompt,
            model=self.classifier_model,
            temperature=self.CLASSIFY_TEMPERATURE,
            max_tokens=self.CLASSIFY_MAX_TOKENS,
        )

    def generate(self, prompt: str) -> str:
        """Grounded answer generation."""
        return self.get_completion(
            prompt,
            model=self.model_name,
            temperature=self.GENERATE_TEMPERATURE,
            max_tokens=self.GENERATE_MAX_TOKENS,
        )
