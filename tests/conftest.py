"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import copy

import pytest

from devtools_inspector.protocol.schema import ProtocolSchema, load_schema

PAGE_SCHEMA = {
    "domains": [
        {
            "domain": "Page",
            "commands": [
                {"name": "enable"},
                {
                    "name": "navigate",
                    "parameters": [
                        {"name": "url", "type": "string"},
                        {"name": "referrer", "type": "string", "optional": True},
                    ],
                },
            ],
            "events": [
                {"name": "loadEventFired", "parameters": [{"name": "timestamp"}]},
                {"name": "frameNavigated"},
            ],
        },
        {
            "domain": "Runtime",
            "commands": [
                {
                    "name": "evaluate",
                    "parameters": [
                        {"name": "expression", "type": "string"},
                        {"name": "returnByValue", "type": "boolean", "optional": True},
                    ],
                }
            ],
        },
    ]
}


@pytest.fixture(scope="module")
def anyio_backend():
    """Configure anyio to use asyncio backend."""
    return "asyncio"


@pytest.fixture
def page_schema() -> ProtocolSchema:
    """Small schema with Page and Runtime domains."""
    return load_schema(PAGE_SCHEMA)


@pytest.fixture
def schema_data() -> dict:
    """Raw protocol description for the small schema."""
    return copy.deepcopy(PAGE_SCHEMA)
