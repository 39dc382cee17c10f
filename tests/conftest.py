"""Shared fixtures: a WarEra client whose HTTP session is a Mock"""

from unittest.mock import Mock

import pytest

from citizenship_tracker.extract.warera_api import WarEraAPIClient


def trpc_response(data):
    """Mock HTTP response wrapping data in the tRPC envelope"""
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"result": {"data": data}}
    return response


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def client(session):
    api_client = WarEraAPIClient(
        base_url="https://api.test/trpc", timeout=5, session=session
    )
    # Ignore any WARERA_AUTH_TOKEN from the environment
    api_client.set_auth_token("")
    return api_client
