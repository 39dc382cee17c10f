from dotenv import load_dotenv
import os

load_dotenv()  # take environment variables from .env

DEFAULT_API_BASE_URL = "https://api2.warera.io/trpc"


def env_get(key: str, default: str | None = None) -> str | None:
    """Get environment variable or return default."""
    return os.getenv(key, default)


def api_base_url() -> str:
    """Base URL of the upstream tRPC API."""
    return env_get("WARERA_API_BASE_URL", DEFAULT_API_BASE_URL).rstrip("/")


def http_timeout() -> float:
    """Per-request timeout in seconds."""
    return float(env_get("WARERA_HTTP_TIMEOUT", "30"))
