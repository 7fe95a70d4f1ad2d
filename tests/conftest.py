"""Global pytest configuration for E-Info.

Tests are marked by the directory they live in (``tests/unit`` -> ``unit``
and so on) unless they carry that mark already.
"""

from __future__ import annotations

from pathlib import Path

import pytest

# pylint: disable=unused-argument

TESTS_ROOT = Path(__file__).parent.resolve()
DIRECTORY_MARKERS = ("unit", "integration", "functional", "e2e")

pytest_plugins = [
    "tests.fixtures.postgres",
]


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config, items: list[pytest.Item]
) -> None:
    """Add the default directory mark to every collected item."""
    for item in items:
        path = item.path.resolve()  # pytest>=8: pathlib.Path
        for marker_name in DIRECTORY_MARKERS:
            if (TESTS_ROOT / marker_name) not in path.parents:
                continue
            if not any(m.name == marker_name for m in item.iter_markers()):
                item.add_marker(getattr(pytest.mark, marker_name))
