"""
Test Extract Layer - WarEra API client with a mocked HTTP session
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, unquote, urlparse

import pytest
import requests

from citizenship_tracker.extract.warera_api import (
    AuthorizationError,
    build_url,
    is_active,
)
from conftest import trpc_response

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def _called_input(session, call_index=0):
    url = session.get.call_args_list[call_index].args[0]
    return json.loads(parse_qs(urlparse(url).query)["input"][0])


def test_build_url_encodes_compact_json():
    url = build_url("https://api.test/trpc", "user.getUserLite", {"userId": "u 1"})

    assert url.startswith("https://api.test/trpc/user.getUserLite?input=")
    encoded = url.split("?input=", 1)[1]
    assert " " not in encoded and "{" not in encoded
    assert unquote(encoded) == '{"userId":"u 1"}'


def test_get_country_by_id_derives_flag_url_and_caches(client, session):
    session.get.return_value = trpc_response(
        {"_id": "c1", "name": "Serbia", "code": "RS", "money": 12}
    )

    country = client.get_country_by_id("c1")

    assert country.id == "c1"
    assert country.name == "Serbia"
    assert country.flag_url == "https://flagcdn.com/w40/rs.png"
    assert _called_input(session) == {"countryId": "c1"}
    assert client.get_country_from_cache("c1") is country


def test_get_country_by_id_second_call_uses_cache(client, session):
    session.get.return_value = trpc_response({"_id": "c1", "name": "Serbia"})

    first = client.get_country_by_id("c1")
    second = client.get_country_by_id("c1")

    assert second is first
    assert session.get.call_count == 1
    assert first.flag_url is None


def test_get_country_by_id_failure_returns_none(client, session):
    session.get.side_effect = requests.ConnectionError("boom")

    assert client.get_country_by_id("c1") is None
    assert client.get_country_from_cache("c1") is None


def test_get_country_by_id_malformed_envelope_returns_none(client, session):
    response = trpc_response(None)
    response.json.return_value = {"error": {"message": "not found"}}
    session.get.return_value = response

    assert client.get_country_by_id("missing") is None


def test_get_country_from_cache_never_calls_network(client, session):
    assert client.get_country_from_cache("c1") is None
    session.get.assert_not_called()


def test_get_all_countries_populates_cache(client, session):
    session.get.return_value = trpc_response(
        [
            {"_id": "c1", "name": "Serbia", "code": "RS"},
            {"_id": "c2", "name": "Croatia", "code": "HR"},
            {"_id": "c3", "name": "Atlantis"},
        ]
    )

    countries = client.get_all_countries()

    assert [c.id for c in countries] == ["c1", "c2", "c3"]
    assert countries[1].flag_url == "https://flagcdn.com/w40/hr.png"
    assert countries[2].flag_url is None
    assert client.get_country_by_id("c2") is countries[1]
    assert session.get.call_count == 1


def test_get_all_countries_keeps_first_observed_country(client, session):
    session.get.return_value = trpc_response({"_id": "c1", "name": "Serbia"})
    original = client.get_country_by_id("c1")

    session.get.return_value = trpc_response([{"_id": "c1", "name": "Renamed"}])
    client.get_all_countries()

    assert client.get_country_from_cache("c1") is original


def test_get_all_countries_failure_returns_empty_list(client, session):
    session.get.side_effect = requests.Timeout("slow")

    assert client.get_all_countries() == []


def test_get_users_by_country_sends_cursor_and_limit(client, session):
    session.get.return_value = trpc_response(
        {
            "items": [{"_id": "u1", "username": "alice"}],
            "nextCursor": "abc",
        }
    )

    page = client.get_users_by_country("c1")

    assert [u.username for u in page.items] == ["alice"]
    assert page.next_cursor == "abc"
    assert _called_input(session) == {"countryId": "c1", "cursor": "", "limit": 100}


def test_get_users_by_country_propagates_network_errors(client, session):
    session.get.side_effect = requests.ConnectionError("down")

    with pytest.raises(requests.ConnectionError):
        client.get_users_by_country("c1")


@pytest.mark.parametrize(
    "last_connection, expected",
    [
        (NOW - timedelta(days=10), True),
        (NOW - timedelta(days=3), True),
        (NOW - timedelta(days=10, seconds=1), False),
        (NOW - timedelta(days=30), False),
        (None, False),
    ],
)
def test_is_active_ten_day_window(last_connection, expected):
    assert is_active(last_connection, NOW) is expected


def test_get_user_lite_exactly_ten_days_is_active(client, session):
    last = (NOW - timedelta(days=10)).isoformat().replace("+00:00", "Z")
    session.get.return_value = trpc_response(
        {"_id": "u1", "username": "alice", "dates": {"lastConnectionAt": last}}
    )

    user = client.get_user_lite("u1", now=NOW)

    assert user.active is True
    assert user.profile_url == "https://app.warera.io/user/u1"
    assert _called_input(session) == {"userId": "u1"}


def test_get_user_lite_older_than_ten_days_is_inactive(client, session):
    session.get.return_value = trpc_response(
        {
            "_id": "u1",
            "username": "alice",
            "dates": {"lastConnectionAt": "2024-06-01T00:00:00.000Z"},
        }
    )

    assert client.get_user_lite("u1", now=NOW).active is False


def test_get_user_lite_without_last_connection_is_inactive(client, session):
    session.get.return_value = trpc_response({"_id": "u1", "username": "alice"})

    user = client.get_user_lite("u1", now=NOW)

    assert user.active is False
    assert user.last_connection_at is None


def test_get_citizenship_changes_without_token_fails_before_network(client, session):
    with pytest.raises(AuthorizationError):
        client.get_citizenship_changes("u1")

    session.get.assert_not_called()


def test_missing_token_error_is_not_a_network_error():
    assert not issubclass(AuthorizationError, requests.RequestException)


def test_get_citizenship_changes_sends_token_and_filter(client, session):
    client.set_auth_token("secret-token")
    session.get.return_value = trpc_response(
        {
            "items": [
                {
                    "_id": "a1",
                    "user": "u1",
                    "country": "c2",
                    "createdAt": "2024-01-01T10:00:00.000Z",
                    "updatedAt": "2024-01-01T10:00:00.000Z",
                    "data": {
                        "action": "changedCitizenship",
                        "fromCountryId": "c1",
                        "toCountryId": "c2",
                    },
                }
            ],
            "nextCursor": None,
        }
    )

    page = client.get_citizenship_changes("u1")

    assert session.get.call_args.kwargs["headers"] == {"Authorization": "secret-token"}
    assert _called_input(session) == {
        "limit": 100,
        "userId": "u1",
        "actionType": "changedCitizenship",
        "direction": "forward",
        "cursor": "",
    }
    change = page.items[0]
    assert (change.from_country_id, change.to_country_id) == ("c1", "c2")
    assert page.next_cursor is None


def test_get_citizenship_changes_propagates_network_error_unchanged(client, session):
    client.set_auth_token("secret-token")
    error = requests.HTTPError("401 Unauthorized")
    session.get.side_effect = error

    with pytest.raises(requests.HTTPError) as excinfo:
        client.get_citizenship_changes("u1")

    assert excinfo.value is error


def test_get_users_by_country_sets_aside_malformed_items(client, session):
    session.get.return_value = trpc_response(
        {
            "items": [
                {"_id": "u1", "username": None},
                {"username": "no-id"},
                {"_id": "u3", "username": "carol"},
            ]
        }
    )

    page = client.get_users_by_country("c1")

    assert [u.id for u in page.items] == ["u1", "u3"]
    assert page.items[0].username == ""
    assert [r.username for r in page.rejected] == ["no-id"]
    assert page.rejected[0].error


def test_get_user_lite_unparseable_last_connection_is_inactive(client, session):
    session.get.return_value = trpc_response(
        {"_id": "u1", "username": "alice", "dates": {"lastConnectionAt": "not-a-date"}}
    )

    user = client.get_user_lite("u1", now=NOW)

    assert user.active is False
    assert user.last_connection_at is None
