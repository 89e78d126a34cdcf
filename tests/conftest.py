"""Shared fixtures: a fresh data source with a seeded ``TestModel`` per test."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from juggler import DataSource
from juggler.connectors import MemoryConnector

if TYPE_CHECKING:
    from juggler.model import PersistedModel


TEST_MODEL_PROPERTIES = {
    "name": {"type": "string", "required": True},
    "id": {"type": "string", "id": True},
}


@pytest.fixture
def datasource() -> DataSource:
    return DataSource(MemoryConnector())


@pytest.fixture
def test_model(datasource: DataSource) -> type[PersistedModel]:
    return datasource.create_model("TestModel", TEST_MODEL_PROPERTIES)


@pytest.fixture
async def existing(test_model: type[PersistedModel]) -> PersistedModel:
    """Create ``first`` (id ``"1"``) and ``second`` (id ``"2"``); return ``first``."""

    first = await test_model.create({"name": "first"})
    await test_model.create({"name": "second"})
    return first
