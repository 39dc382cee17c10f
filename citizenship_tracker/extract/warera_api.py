"""
WarEra API Client - Pure I/O Operations

This module handles all calls to the WarEra tRPC API with no business logic
beyond the derived fields the API itself does not provide (flag URL, active).
Every procedure is invoked as GET <base>/<procedure>?input=<JSON>.
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..coreutils.env import api_base_url, env_get, http_timeout
from ..coreutils.request import get_json, new_session
from ..coreutils.time import as_utc
from .schemas import ActionLogPage, Country, UserLite, UsersPage

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(days=10)
DEFAULT_PAGE_SIZE = 100
CITIZENSHIP_ACTION_TYPE = "changedCitizenship"


class AuthorizationError(RuntimeError):
    """Raised when an authenticated procedure is called without a token"""


def build_url(base_url: str, procedure: str, payload: Dict[str, Any]) -> str:
    """Encode the input object the way the tRPC GET convention expects"""
    encoded = quote(json.dumps(payload, separators=(",", ":")), safe="!~*'()")
    return f"{base_url}/{procedure}?input={encoded}"


def is_active(last_connection_at: Optional[datetime], now: datetime) -> bool:
    """True iff the last connection is no older than ACTIVE_WINDOW"""
    if last_connection_at is None:
        return False
    return as_utc(last_connection_at) >= as_utc(now) - ACTIVE_WINDOW


class WarEraAPIClient:
    """API client for the WarEra endpoints used by the tracker"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        auth_token: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url or api_base_url()
        self.timeout = timeout if timeout is not None else http_timeout()
        self.session = session or new_session()
        self.auth_token = auth_token or env_get("WARERA_AUTH_TOKEN", "") or ""
        self.country_cache: Dict[str, Country] = {}

    def set_auth_token(self, token: str) -> None:
        """Store the credential sent as the Authorization header"""
        self.auth_token = token or ""

    def _call(
        self,
        procedure: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        url = build_url(self.base_url, procedure, payload)
        logger.debug(f"Calling {procedure} with input {payload}")
        body = get_json(self.session, url, headers=headers, timeout=self.timeout)
        return body["result"]["data"]

    def get_country_from_cache(self, country_id: str) -> Optional[Country]:
        return self.country_cache.get(country_id)

    def get_country_by_id(self, country_id: str) -> Optional[Country]:
        """
        Fetch a single country, served from the cache when already known

        Returns:
            Country or None if the fetch failed for any reason
        """
        cached = self.country_cache.get(country_id)
        if cached is not None:
            return cached

        try:
            raw = self._call("country.getCountryById", {"countryId": country_id})
            country = Country.from_api(raw)
        except (requests.exceptions.RequestException, KeyError, TypeError, ValueError) as e:
            logger.error(f"Error fetching country {country_id}: {e}")
            return None

        self.country_cache[country_id] = country
        return country

    def get_all_countries(self) -> List[Country]:
        """
        Fetch the whole country list and populate the cache with it

        Returns:
            List[Country]: All countries, empty on failure
        """
        try:
            raw = self._call("country.getAllCountries", {})
            countries = [Country.from_api(item) for item in raw]
        except (requests.exceptions.RequestException, KeyError, TypeError, ValueError) as e:
            logger.error(f"Error fetching countries: {e}")
            return []

        for country in countries:
            # First observation wins, cached countries are never replaced
            self.country_cache.setdefault(country.id, country)

        logger.info(f"Fetched {len(countries)} countries")
        return countries

    def get_users_by_country(
        self, country_id: str, cursor: str = "", limit: int = DEFAULT_PAGE_SIZE
    ) -> UsersPage:
        """One page of the roster of a country. Network errors propagate."""
        raw = self._call(
            "user.getUsersByCountry",
            {"countryId": country_id, "cursor": cursor, "limit": limit},
        )
        return UsersPage.from_api(raw)

    def get_user_lite(self, user_id: str, now: Optional[datetime] = None) -> UserLite:
        """
        Fetch a single user and derive `active` from its last connection

        Args:
            user_id: User identifier
            now: Evaluation time, defaults to the current time

        Returns:
            UserLite: User with `active` set
        """
        raw = self._call("user.getUserLite", {"userId": user_id})
        user = UserLite.from_api(raw)
        user.active = is_active(
            user.last_connection_at, now or datetime.now(timezone.utc)
        )
        return user

    def get_citizenship_changes(self, user_id: str, cursor: str = "") -> ActionLogPage:
        """
        One page of a user's citizenship changes, oldest first

        Raises:
            AuthorizationError: No token set, nothing is sent
            requests.RequestException: Network/upstream failure, unchanged
        """
        if not self.auth_token:
            raise AuthorizationError(
                "Authorization token is required for this operation"
            )

        payload = {
            "limit": DEFAULT_PAGE_SIZE,
            "userId": user_id,
            "actionType": CITIZENSHIP_ACTION_TYPE,
            "direction": "forward",
            "cursor": cursor,
        }
        raw = self._call(
            "actionLog.getPaginated",
            payload,
            headers={"Authorization": self.auth_token},
        )
        return ActionLogPage.from_api(raw)

    def close(self) -> None:
        self.session.close()
