"""Root conftest: the ``--run-slow`` switch for stress and concurrency tests."""

from __future__ import annotations

import os

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Include tests marked @pytest.mark.slow (also enabled by RUN_SLOW=1).",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-slow") or os.getenv("RUN_SLOW") == "1":
        return
    skip_slow = pytest.mark.skip(reason="slow test, pass --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
