"""Shared fixtures for methodfabric tests."""

from typing import Any

import pytest

from methodfabric.config import DispatcherSettings
from methodfabric.registry import MethodRegistry

METHODS: list[dict[str, Any]] = [
    {
        "name": "update",
        "aliases": ["update_status"],
        "http_verb": "POST",
        "path_template": "statuses/update.json",
        "required_params": ["status"],
        "optional_params": ["in_reply_to_status_id", "trim_user"],
        "requires_authentication": True,
    },
    {
        "name": "show_status",
        "path_template": "statuses/show/{id}.json",
        "required_params": ["id"],
        "optional_params": ["include_entities"],
    },
    {
        "name": "show_user",
        "path_template": "users/show.json",
        "identity_params": ["id", "user_id", "screen_name"],
    },
    {
        "name": "lookup_users",
        "path_template": "users/lookup.json",
        "optional_params": ["user_id", "screen_name"],
    },
    {
        "name": "destroy_status",
        "http_verb": "DELETE",
        "path_template": "statuses/{id}.json",
        "required_params": ["id"],
    },
    {
        "name": "home_timeline",
        "path_template": "statuses/home_timeline.json",
        "optional_params": ["count", "page", "since_id"],
    },
    {
        "name": "followers_ids",
        "path_template": "followers/ids.json",
        "optional_params": ["screen_name", "cursor"],
    },
    {
        "name": "list_statuses",
        "path_template": "lists/statuses.json",
        "optional_params": ["owner_screen_name", "list_id"],
        "legacy_path_template": "{owner_screen_name}/lists/{list_id}/statuses.json",
    },
    {
        "name": "public_timeline",
        "path_template": "statuses/public_timeline.json",
        "deprecated": True,
    },
]


@pytest.fixture
def registry() -> MethodRegistry:
    return MethodRegistry.from_table(METHODS)


@pytest.fixture
def settings() -> DispatcherSettings:
    """Settings isolated from any METHODFABRIC_* environment or .env file."""
    return DispatcherSettings(_env_file=None)
