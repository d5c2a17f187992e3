"""
Shared fixtures for the flowtask tests.
"""
import pytest

from flowtask.config import Credentials, FlowSettings, EnrichmentStrategy


@pytest.fixture
def credentials():
    return Credentials(access_token="token-123", user_id="me@example.com", org_id="ORG1")


@pytest.fixture
def settings(credentials):
    return FlowSettings(credentials=credentials, base_url="https://flow.test")


@pytest.fixture
def detail_only_settings(credentials):
    return FlowSettings(
        credentials=credentials,
        base_url="https://flow.test",
        enrichment_strategy=EnrichmentStrategy.DETAIL_ONLY,
    )
