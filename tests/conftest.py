"""Shared fixtures: every test builds inside its own isolated build context."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import structlog

from stitch.context import BuildContext, build_session
from stitch.keys import clear_key_cache

if TYPE_CHECKING:
    from collections.abc import Iterator


@pytest.fixture
def ctx() -> Iterator[BuildContext]:
    with build_session() as session:
        yield session


@pytest.fixture(autouse=True)
def _reset_process_state() -> Iterator[None]:
    yield
    clear_key_cache()
    structlog.reset_defaults()
