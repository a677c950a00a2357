"""
Pytest configuration and fixtures for Link Relay tests.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Shared factories live next to the tests
sys.path.insert(0, str(Path(__file__).parent))

from relay_factories import (  # noqa: E402
    CATEGORY,
    INPUT_1,
    OUTPUT_1,
    INPUT_2,
    OUTPUT_2,
    ROLE_2,
    SERVER_1,
    SERVER_2,
    make_binding,
    make_role,
)
from linkrelay.relay.retry import RetryPolicy  # noqa: E402
from linkrelay.relay.routing_table import RoutingTable  # noqa: E402


@pytest.fixture
def no_delay_policy() -> RetryPolicy:
    """Retry policy that never sleeps for real."""
    return RetryPolicy(max_attempts=3, base_delay=0.0, max_delay=0.0, jitter=0.0)


@pytest.fixture
def routing_table() -> RoutingTable:
    """Two servers sharing the ``alerts`` category; server 2 has a role."""
    table = RoutingTable()
    table.load(
        [
            make_binding(SERVER_1, INPUT_1, OUTPUT_1, CATEGORY),
            make_binding(SERVER_2, INPUT_2, OUTPUT_2, CATEGORY),
        ],
        [make_role(SERVER_2, CATEGORY, ROLE_2)],
    )
    return table
