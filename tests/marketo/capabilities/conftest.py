"""Shared fixtures for capability tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from config.config import BulkSettings


@pytest.fixture
def transport():
    """Transport whose get/post/delete are AsyncMocks."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value={"success": True, "result": []})
    mock.post = AsyncMock(return_value={"success": True, "result": []})
    mock.delete = AsyncMock(return_value={"success": True, "result": []})
    return mock


@pytest.fixture
def settings():
    return BulkSettings(
        lead_batch_size=2,
        lead_lookup_batch_size=2,
        program_member_batch_size=3,
        campaign_request_batch_size=2,
    )


@pytest.fixture
def partitions():
    return {
        "success": True,
        "result": [
            {"id": 1, "name": "Default"},
            {"id": 2, "name": "Partners"},
        ],
    }
