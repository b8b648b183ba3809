import os
from dataclasses import dataclass

from dotenv import load_dotenv


def load_env():
    """Load environment variables from env file.

    Defaults to config/local.env for local development.
    Set ENV_FILE environment variable to override.
    """
    env = os.getenv("ENV_FILE", "config/local.env")
    load_dotenv(env)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name} value: {raw!r}")


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name} value: {raw!r}")


@dataclass
class Settings:
    """Runtime settings for the search proxy. Defaults suit local development."""

    tmdb_api_key: str | None = None
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    omdb_api_key: str | None = None
    omdb_base_url: str = "https://www.omdbapi.com/"

    # Term extraction service (OpenAI compatible). Unset url => tokenizer only.
    llm_api_url: str | None = None
    llm_api_key: str | None = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 4.0

    request_timeout_seconds: float = 8.0
    max_retries: int = 2
    max_in_flight: int = 8

    cache_duration_ms: int = 60 * 60 * 1000  # 1 hour
    cache_backend: str = "memory"

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None

    page_size: int = 10
    port: int = 8080

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            tmdb_api_key=os.getenv("TMDB_API_KEY"),
            tmdb_base_url=os.getenv("TMDB_BASE_URL", cls.tmdb_base_url),
            omdb_api_key=os.getenv("OMDB_API_KEY"),
            omdb_base_url=os.getenv("OMDB_BASE_URL", cls.omdb_base_url),
            llm_api_url=os.getenv("LLM_API_URL") or None,
            llm_api_key=os.getenv("LLM_API_KEY") or None,
            llm_model=os.getenv("LLM_MODEL", cls.llm_model),
            llm_timeout_seconds=_float_env("LLM_TIMEOUT_SECONDS", cls.llm_timeout_seconds),
            request_timeout_seconds=_float_env(
                "REQUEST_TIMEOUT_SECONDS", cls.request_timeout_seconds
            ),
            max_retries=_int_env("MAX_RETRIES", cls.max_retries),
            max_in_flight=_int_env("MAX_IN_FLIGHT", cls.max_in_flight),
            cache_duration_ms=_int_env("CACHE_DURATION_MS", cls.cache_duration_ms),
            cache_backend=os.getenv("CACHE_BACKEND", cls.cache_backend).lower(),
            redis_host=os.getenv("REDIS_HOST", cls.redis_host),
            redis_port=_int_env("REDIS_PORT", cls.redis_port),
            redis_password=os.getenv("REDIS_PASSWORD") or None,
            page_size=_int_env("PAGE_SIZE", cls.page_size),
            port=_int_env("PORT", cls.port),
        )
