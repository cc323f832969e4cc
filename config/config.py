import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

from models.search_result import BackendId, SearchDepth
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ALLOWED_DOMAINS = "vinuni.edu.vn"
DEFAULT_PRIMARY_DOMAIN = "policy.vinuni.edu.vn"
DEFAULT_EVIDENCE_CAP = 6
DEFAULT_MAX_RESULTS = 5
DEFAULT_BACKEND_TIMEOUT_S = 15.0
DEFAULT_LLM_TIMEOUT_S = 30.0

# Order in which backends are searched and reported
BACKEND_ORDER = (BackendId.VECTOR_STORE, BackendId.TAVILY)


class ModelType(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    GEMINI = "gemini"


class CombineMode(str, Enum):
    MERGED = "merged"
    PROVENANCE = "provenance"


@dataclass(frozen=True)
class BackendLimits:
    max_results: int = DEFAULT_MAX_RESULTS
    search_depth: SearchDepth = SearchDepth.ADVANCED
    timeout_s: float = DEFAULT_BACKEND_TIMEOUT_S


@dataclass(frozen=True)
class BackendConfig:
    """Which backends a call may use and how hard each one is queried."""

    enabled: frozenset = frozenset(BACKEND_ORDER)
    limits: dict = field(default_factory=dict)
    evidence_cap: int = DEFAULT_EVIDENCE_CAP
    parallel: bool = False
    combine_mode: CombineMode = CombineMode.MERGED

    def limits_for(self, backend: BackendId) -> BackendLimits:
        return self.limits.get(backend) or BackendLimits()

    def is_enabled(self, backend: BackendId) -> bool:
        return backend in self.enabled

    def with_overrides(self, **changes) -> "BackendConfig":
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}; using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, float(default)))


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip().lower() for item in os.getenv(name, default).split(",") if item.strip()]


def parse_backend_ids(names: list[str]) -> frozenset:
    ids = set()
    for name in names:
        try:
            ids.add(BackendId(name))
        except ValueError:
            logger.warning(f"Ignoring unknown backend '{name}'")
    return frozenset(ids)


@dataclass(frozen=True)
class Config:
    """
    Process-wide configuration, read once at startup.

    Credentials decide backend availability for the lifetime of the process;
    nothing here is re-read per request.
    """

    llm_provider: str = ModelType.OPENAI.value
    openai_api_key: str | None = None
    gemini_api_key: str | None = None
    classifier_model: str = "gpt-4o-mini"
    generation_model: str = "gpt-4o-mini"
    llm_timeout_s: float = DEFAULT_LLM_TIMEOUT_S

    tavily_api_key: str | None = None
    vector_store_id: str | None = None

    allowed_domains: frozenset = frozenset({DEFAULT_ALLOWED_DOMAINS})
    primary_domain: str = DEFAULT_PRIMARY_DOMAIN
    enable_keyword_extraction: bool = False
    backend_config: BackendConfig = field(default_factory=BackendConfig)

    api_keys: tuple[str, ...] = ()

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """Load ``.env`` (when present) and build the configuration from the environment."""
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        provider = os.getenv("LLM_PROVIDER", ModelType.OPENAI.value).strip().lower()
        default_model = "gemini-2.5-flash-lite" if provider == ModelType.GEMINI.value else "gpt-4o-mini"

        depth_name = os.getenv("SEARCH_DEPTH", SearchDepth.ADVANCED.value).strip().lower()
        try:
            depth = SearchDepth(depth_name)
        except ValueError:
            logger.warning(f"Invalid SEARCH_DEPTH={depth_name!r}; using advanced")
            depth = SearchDepth.ADVANCED

        limits = BackendLimits(
            max_results=_env_int("MAX_RESULTS_PER_BACKEND", DEFAULT_MAX_RESULTS),
            search_depth=depth,
            timeout_s=_env_float("BACKEND_TIMEOUT_S", DEFAULT_BACKEND_TIMEOUT_S),
        )

        combine_name = os.getenv("COMBINE_MODE", CombineMode.MERGED.value).strip().lower()
        try:
            combine_mode = CombineMode(combine_name)
        except ValueError:
            logger.warning(f"Invalid COMBINE_MODE={combine_name!r}; using merged")
            combine_mode = CombineMode.MERGED

        backend_config = BackendConfig(
            enabled=parse_backend_ids(
                _env_list("ENABLED_BACKENDS", ",".join(b.value for b in BACKEND_ORDER))
            ),
            limits={backend: limits for backend in BACKEND_ORDER},
            evidence_cap=_env_int("EVIDENCE_CAP", DEFAULT_EVIDENCE_CAP),
            parallel=_env_flag("PARALLEL_BACKENDS"),
            combine_mode=combine_mode,
        )

        return cls(
            llm_provider=provider,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            gemini_api_key=os.getenv("GOOGLE_GEMINI_API_KEY") or None,
            classifier_model=os.getenv("CLASSIFIER_MODEL", default_model),
            generation_model=os.getenv("GENERATION_MODEL", default_model),
            llm_timeout_s=_env_float("LLM_TIMEOUT_S", DEFAULT_LLM_TIMEOUT_S),
            tavily_api_key=os.getenv("TAVILY_API_KEY") or None,
            vector_store_id=os.getenv("VECTOR_STORE_ID") or None,
            allowed_domains=frozenset(_env_list("ALLOWED_DOMAINS", DEFAULT_ALLOWED_DOMAINS)),
            primary_domain=os.getenv("PRIMARY_DOMAIN", DEFAULT_PRIMARY_DOMAIN).strip().lower(),
            enable_keyword_extraction=_env_flag("ENABLE_KEYWORD_EXTRACTION"),
            backend_config=backend_config,
            api_keys=tuple(k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()),
        )

    def validate(self) -> list[str]:
        """
        Check the configuration for problems.

        Returns:
            Human-readable problems; empty when the configuration is usable.
            Missing search credentials are not problems, those backends are skipped.
        """
        problems = []
        if self.llm_provider == ModelType.OPENAI.value:
            if not self.openai_api_key:
                problems.append("OPENAI_API_KEY is not set")
        elif self.llm_provider == ModelType.GEMINI.value:
            if not self.gemini_api_key:
                problems.append("GOOGLE_GEMINI_API_KEY is not set")
        else:
            valid = ", ".join(e.value for e in ModelType)
            problems.append(f"Unknown LLM_PROVIDER '{self.llm_provider}'. Must be one of: {valid}")

        if not self.allowed_domains:
            problems.append("ALLOWED_DOMAINS is empty")
        if self.backend_config.evidence_cap < 1:
            problems.append("EVIDENCE_CAP must be at least 1")
        return problems

    def get_model_info(self) -> str:
        if self.llm_provider == ModelType.OPENAI.value:
            return f"OpenAI ({self.generation_model})"
        if self.llm_provider == ModelType.GEMINI.value:
            return f"Google Gemini ({self.generation_model})"
        return "Unknown"
