"""
Tracker Orchestrator - Sequential Citizenship History Fetch

For one country:
1. Fetch the roster (a single page of up to 100 users)
2. For each user, fetch the lite record and classify it as active/inactive
3. For each active user, fetch one page of citizenship changes

Requests are issued strictly one at a time. A failure for one user never
stops the others; only a roster failure aborts the run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ..extract.schemas import CitizenshipChange, Country, UserLite
from ..extract.warera_api import AuthorizationError, WarEraAPIClient

logger = logging.getLogger(__name__)


@dataclass
class TrackerProgress:
    current: int = 0
    total: int = 0


@dataclass
class PlayerRecord:
    """Accumulated state of one active player"""

    user_id: str
    username: str
    last_connection_at: Optional[datetime] = None
    changes: List[CitizenshipChange] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.loading


@dataclass
class UserFailure:
    """A user whose lite record could not be fetched"""

    user_id: str
    username: str
    error: str


@dataclass
class TrackerResult:
    country_id: str
    country: Optional[Country] = None
    players: List[PlayerRecord] = field(default_factory=list)
    failures: List[UserFailure] = field(default_factory=list)
    total_users: int = 0
    active_users: int = 0
    inactive_users: int = 0
    progress: TrackerProgress = field(default_factory=TrackerProgress)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def country_names(self, client: WarEraAPIClient) -> Dict[str, str]:
        """Names of every country referenced by the changes, from the cache"""
        names = {}
        for player in self.players:
            for change in player.changes:
                for country_id in (change.from_country_id, change.to_country_id):
                    if not country_id or country_id in names:
                        continue
                    country = client.get_country_from_cache(country_id)
                    if country is not None:
                        names[country_id] = country.name
        return names


class CitizenshipTracker:
    """Drives the sequential roster -> users -> change-log workflow"""

    def __init__(
        self,
        client: WarEraAPIClient,
        on_progress: Optional[Callable[[TrackerProgress], None]] = None,
    ):
        """
        Initialize the tracker

        Args:
            client: Shared API client (holds the token and country cache)
            on_progress: Called with the progress after every processed user
        """
        self.client = client
        self.on_progress = on_progress

    def run(self, country_id: str) -> TrackerResult:
        """
        Fetch the citizenship history of a country's active players

        Args:
            country_id: Selected country

        Returns:
            TrackerResult: Accumulated players, counters and progress. `error`
            is set when the run could not start or the roster fetch failed.
        """
        result = TrackerResult(country_id=country_id)

        if not self.client.auth_token:
            result.error = "Authorization token is required for this operation"
            logger.error(f"❌ {result.error}")
            return result

        result.country = self.client.get_country_by_id(country_id)
        country_label = result.country.name if result.country else country_id
        logger.info(f"🚀 Starting citizenship tracker for {country_label}")

        try:
            roster = self.client.get_users_by_country(country_id)
        except Exception as e:
            result.error = f"Failed to fetch users for country {country_label}: {e}"
            logger.error(f"❌ {result.error}")
            return result

        if roster.next_cursor:
            logger.warning(
                "Roster has more pages than the first; only the first page is processed"
            )

        result.total_users = len(roster.items) + len(roster.rejected)
        result.progress = TrackerProgress(current=0, total=result.total_users)
        self._report(result.progress)

        for rejected in roster.rejected:
            result.failures.append(
                UserFailure(
                    user_id=rejected.user_id,
                    username=rejected.username,
                    error=rejected.error,
                )
            )
            result.progress.current += 1
            self._report(result.progress)

        for roster_user in roster.items:
            self._process_user(roster_user, result)
            result.progress.current += 1
            self._report(result.progress)

        logger.info(
            f"✅ Processed {result.total_users} users: {result.active_users} active, "
            f"{result.inactive_users} inactive, {len(result.failures)} failed"
        )
        return result

    def _process_user(self, roster_user: UserLite, result: TrackerResult) -> None:
        try:
            user = self.client.get_user_lite(roster_user.id)
        except Exception as e:
            logger.error(f"Error fetching user {roster_user.id}: {e}")
            result.failures.append(
                UserFailure(
                    user_id=roster_user.id,
                    username=roster_user.username,
                    error=str(e),
                )
            )
            return

        if not user.active:
            result.inactive_users += 1
            return
        result.active_users += 1

        player = PlayerRecord(
            user_id=user.id,
            username=user.username or roster_user.username,
            last_connection_at=user.last_connection_at,
            loading=True,
        )
        result.players.append(player)

        try:
            page = self.client.get_citizenship_changes(user.id)
        except AuthorizationError as e:
            player.error = str(e)
            logger.error(f"Not authorized to fetch changes for {player.username}: {e}")
        except Exception as e:
            player.error = str(e)
            logger.error(f"Error fetching changes for {player.username}: {e}")
        else:
            player.changes = list(page.items)
            logger.info(
                f"Fetched {len(player.changes)} citizenship changes for {player.username}"
            )
        finally:
            player.loading = False

    def _report(self, progress: TrackerProgress) -> None:
        if self.on_progress is not None:
            self.on_progress(progress)
