from __future__ import annotations

import sys
from typing import Iterable

import pytest
from loguru import logger

import sample_queries


@pytest.fixture(autouse=True)
def reset_query_calls() -> Iterable[None]:
    sample_queries.CALLS.clear()
    yield
    sample_queries.CALLS.clear()


@pytest.fixture(autouse=True)
def restore_log_sinks() -> Iterable[None]:
    """The CLI replaces loguru sinks; put a plain stderr sink back after each test."""

    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
