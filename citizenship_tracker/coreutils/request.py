import time
import logging
import requests
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def new_session() -> requests.Session:
    """Create a new requests session with default headers (no retry adapter)"""
    session = requests.Session()

    # Set default headers
    session.headers.update(
        {"User-Agent": "warera-citizenship-tracker/1.0", "Accept": "application/json"}
    )

    return session


def get_json(
    session: requests.Session,
    url: str,
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 30,
) -> Any:
    """Single GET request with JSON parsing.

    Args:
        session: HTTP session to use
        url: Fully built URL, query string included
        headers: Optional extra headers (e.g. Authorization)
        timeout: Request timeout in seconds

    Returns:
        Parsed JSON response

    Raises:
        requests.RequestException: On HTTP errors
        ValueError: On invalid JSON responses
    """
    start = time.time()
    response = session.get(url, headers=headers, timeout=timeout)
    response.raise_for_status()
    data = response.json()
    logger.debug(f"Fetched from {url}: {time.time() - start:.2f} seconds")
    return data
