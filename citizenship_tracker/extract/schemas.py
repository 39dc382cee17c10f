"""
Extract Layer Schemas

Records for data coming from the WarEra tRPC API. Upstream records carry
more fields than we use; unknown fields are kept on the model as extras.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..coreutils.time import parse_iso

logger = logging.getLogger(__name__)

FLAG_URL_TEMPLATE = "https://flagcdn.com/w40/{code}.png"
PROFILE_URL_TEMPLATE = "https://app.warera.io/user/{user_id}"


def flag_url_for(code: Optional[str]) -> Optional[str]:
    """Flag image URL for a two-letter country code"""
    if not code:
        return None
    return FLAG_URL_TEMPLATE.format(code=code.lower())


def profile_url_for(user_id: str) -> str:
    """Public profile page for a user"""
    return PROFILE_URL_TEMPLATE.format(user_id=user_id)


class Country(BaseModel):
    """Country record from country.getCountryById / country.getAllCountries"""

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    id: str = Field(..., alias="_id", description="Country identifier")
    name: str = Field(..., description="Display name")
    code: Optional[str] = Field(None, description="ISO 3166 alpha-2 code")
    flag_url: Optional[str] = Field(None, description="Derived flag image URL")

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Country":
        """Build a country and derive its flag URL when a code exists"""
        country = dict(raw)
        country["flag_url"] = flag_url_for(country.get("code"))
        return cls.model_validate(country)


class UserLite(BaseModel):
    """Lite user record from user.getUsersByCountry / user.getUserLite"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., alias="_id", description="User identifier")
    username: Optional[str] = Field("", description="In-game username")
    last_connection_at: Optional[datetime] = Field(
        None, description="Last connection time (dates.lastConnectionAt)"
    )
    active: Optional[bool] = Field(
        None, description="Connected within the last 10 days, set at fetch time"
    )

    @field_validator("username", mode="before")
    @classmethod
    def blank_username(cls, v):
        return "" if v is None else v

    @field_validator("last_connection_at", mode="before")
    @classmethod
    def lenient_last_connection(cls, v):
        """Unparseable timestamps count as no connection"""
        if isinstance(v, datetime):
            return v
        return parse_iso(v)

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "UserLite":
        user = dict(raw)
        dates = user.get("dates") or {}
        user["last_connection_at"] = dates.get("lastConnectionAt")
        return cls.model_validate(user)

    @property
    def profile_url(self) -> str:
        return profile_url_for(self.id)


class CitizenshipChange(BaseModel):
    """Canonical citizenship-change record, see normalize_change()"""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    country_id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    timestamp: Optional[str] = None
    from_country_id: Optional[str] = None
    to_country_id: Optional[str] = None
    from_country_name: Optional[str] = None
    to_country_name: Optional[str] = None
    reason: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("created_at", "updated_at", "timestamp", mode="before")
    @classmethod
    def stringify_dates(cls, v):
        """Keep dates as the raw strings the API sent; parsing happens later"""
        if v is None:
            return None
        return str(v)


def normalize_change(raw: Dict[str, Any]) -> CitizenshipChange:
    """
    Translate a raw action-log item into the canonical record

    Handles both payload conventions:
    - current: data.fromCountryId / data.toCountryId
    - legacy:  data.from / data.to

    Args:
        raw: One item of actionLog.getPaginated

    Returns:
        CitizenshipChange: Normalized record
    """
    data = raw.get("data") or {}
    return CitizenshipChange(
        id=str(raw.get("_id", "")),
        user_id=str(raw.get("user", "")),
        country_id=raw.get("country"),
        created_at=raw.get("createdAt"),
        updated_at=raw.get("updatedAt"),
        timestamp=raw.get("timestamp"),
        from_country_id=data.get("fromCountryId") or data.get("from"),
        to_country_id=data.get("toCountryId") or data.get("to"),
        from_country_name=data.get("fromCountryName"),
        to_country_name=data.get("toCountryName"),
        reason=data.get("reason"),
        data=dict(data),
    )


class RejectedUser(BaseModel):
    """A roster item that could not be read as a user"""

    user_id: str = ""
    username: str = ""
    error: str


class UsersPage(BaseModel):
    """One page of user.getUsersByCountry"""

    items: List[UserLite] = Field(default_factory=list)
    rejected: List[RejectedUser] = Field(default_factory=list)
    next_cursor: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "UsersPage":
        """Parse items one at a time; a malformed item is set aside, not fatal"""
        items = []
        rejected = []
        for item in raw.get("items") or []:
            try:
                items.append(UserLite.from_api(item))
            except (ValidationError, TypeError, ValueError) as e:
                fields = item if isinstance(item, dict) else {}
                logger.warning(f"Skipping malformed roster item {item!r}: {e}")
                rejected.append(
                    RejectedUser(
                        user_id=str(fields.get("_id") or ""),
                        username=str(fields.get("username") or ""),
                        error=str(e),
                    )
                )
        return cls(items=items, rejected=rejected, next_cursor=raw.get("nextCursor"))


class ActionLogPage(BaseModel):
    """One page of actionLog.getPaginated, items already normalized"""

    items: List[CitizenshipChange] = Field(default_factory=list)
    next_cursor: Optional[str] = None

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "ActionLogPage":
        return cls(
            items=[normalize_change(item) for item in raw.get("items") or []],
            next_cursor=raw.get("nextCursor"),
        )
