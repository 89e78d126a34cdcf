"""Connector-side atomic upserts, bulk create concurrency, and DAO plumbing."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from juggler import DataSource, ModelDefinitionError, ModelNotAttachedError, ValidationError
from juggler.connectors import MemoryConnector
from juggler.model import ModelBuilder

PROPERTIES = {
    "name": {"type": "string", "required": True},
    "id": {"type": "string", "id": True},
}


@pytest.fixture
async def atomic_model():
    datasource = DataSource(
        MemoryConnector(atomic_upserts=True), settings={"dao": {"atomic_upserts": True}}
    )
    model = datasource.create_model("TestModel", PROPERTIES)
    await model.create({"name": "first"})
    await model.create({"name": "second"})
    datasource.trace.clear()
    return model


async def test_atomic_upsert_fires_each_hook_once(atomic_model) -> None:
    instance = await atomic_model.update_or_create({"id": "1", "name": "renamed"})

    trace = atomic_model.datasource.trace
    assert trace.operations(model_name="TestModel") == ("query", "before save", "after save")
    assert instance.to_dict() == {"id": "1", "name": "renamed"}


async def test_atomic_upsert_does_not_apply_query_hook_rewrites(atomic_model) -> None:
    def redirect(ctx: Any) -> None:
        ctx.query = {"where": {"id": {"neq": "1"}}}

    atomic_model.observe("query", redirect)

    await atomic_model.update_or_create({"id": "1", "name": "renamed"})

    names = [item.name for item in await atomic_model.find(notify=False)]
    assert names == ["renamed", "second"]


async def test_atomic_upsert_skips_query_hook_without_id(atomic_model) -> None:
    instance = await atomic_model.update_or_create({"name": "third"})

    trace = atomic_model.datasource.trace
    assert trace.operations(model_name="TestModel") == ("before save", "after save")
    assert instance.id == "3"


async def test_atomic_upsert_leaves_unset_properties_out_of_before_save(atomic_model) -> None:
    seen: list[Any] = []
    atomic_model.observe("before save", lambda ctx: seen.append(ctx.instance.name))

    await atomic_model.update_or_create({"id": "1"})

    assert seen == [None]
    assert (await atomic_model.find_by_id("1", notify=False)).name == "first"


@pytest.mark.parametrize("payload", [{"id": "new-id"}, {}])
async def test_atomic_upsert_validates_required_properties_when_creating(
    atomic_model, payload
) -> None:
    with pytest.raises(ValidationError) as info:
        await atomic_model.update_or_create(payload)

    assert info.value.codes == {"name": ["presence"]}
    assert await atomic_model.count(notify=False) == 2


async def test_atomic_upsert_is_not_used_unless_enabled_in_settings() -> None:
    datasource = DataSource(MemoryConnector(atomic_upserts=True))
    model = datasource.create_model("TestModel", PROPERTIES)
    await model.create({"name": "first"})
    seen: list[Any] = []
    model.observe("before save", lambda ctx: seen.append(ctx.instance.name))

    await model.update_or_create({"id": "1"})

    assert model.datasource.dao_for(model).uses_atomic_upserts is False
    assert seen == ["first"]


async def test_bulk_create_with_concurrency_keeps_result_order() -> None:
    datasource = DataSource(settings={"dao": {"bulk_concurrency": 4}})
    model = datasource.create_model("TestModel", PROPERTIES)
    in_flight = 0
    peak = 0

    async def slow(ctx: Any) -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1

    model.observe("before save", slow)

    created = await model.create([{"name": f"item-{index}"} for index in range(8)])

    assert [item.name for item in created] == [f"item-{index}" for index in range(8)]
    assert len({item.id for item in created}) == 8
    assert 1 < peak <= 4


async def test_bulk_create_is_serialized_by_default(test_model) -> None:
    order: list[str] = []
    test_model.observe("before save", lambda ctx: order.append(f"before {ctx.instance.name}"))
    test_model.observe("after save", lambda ctx: order.append(f"after {ctx.instance.name}"))

    await test_model.create([{"name": "a"}, {"name": "b"}])

    assert order == ["before a", "after a", "before b", "after b"]


async def test_bulk_create_of_empty_list_returns_empty_list(test_model) -> None:
    assert await test_model.create([]) == []


async def test_create_rejects_non_mapping_data(test_model) -> None:
    with pytest.raises(TypeError, match="must be a mapping"):
        await test_model.create(42)


async def test_model_without_data_source_cannot_query() -> None:
    builder = ModelBuilder()
    detached = builder.define("Detached", {"name": str})

    with pytest.raises(ModelNotAttachedError):
        await detached.find()


async def test_extended_model_shares_data_source_and_base_observers(test_model) -> None:
    seen: list[str] = []
    test_model.observe("before save", lambda ctx: seen.append("base"))
    child = test_model.extend("ChildModel", {"rank": int})
    child.observe("before save", lambda ctx: seen.append("child"))

    created = await child.create({"name": "kid", "rank": 2})

    assert child.datasource is test_model.datasource
    assert seen == ["base", "child"]
    assert created.to_dict() == {"name": "kid", "id": "1", "rank": 2}


async def test_find_supports_order_limit_and_offset(test_model) -> None:
    await test_model.create([{"name": name} for name in ("c", "a", "d", "b")])

    found = await test_model.find({"order": "name DESC", "limit": 2, "offset": 1})

    assert [item.name for item in found] == ["c", "b"]


async def test_find_one_and_find_by_id(test_model, existing) -> None:
    assert (await test_model.find_one({"where": {"name": "second"}})).id == "2"
    assert (await test_model.find_by_id("1")).name == "first"
    assert await test_model.find_by_id("missing") is None


async def test_attach_binds_models_defined_on_the_data_source_builder() -> None:
    datasource = DataSource()
    model = datasource.builder.define("Loose", {"name": str})

    assert datasource.attach(model) is model
    created = await model.create({"name": "bound"})

    assert created.id == "1"
    assert datasource.dao_for(model) is datasource.dao_for(model)


def test_attach_and_dao_for_reject_foreign_models() -> None:
    datasource = DataSource()
    other = DataSource()
    foreign = other.create_model("Foreign", {"name": str})

    with pytest.raises(ModelDefinitionError, match="different model builder"):
        datasource.attach(foreign)
    with pytest.raises(ModelDefinitionError, match="not attached"):
        datasource.dao_for(foreign)
