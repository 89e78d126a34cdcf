"""Observer registry resolution and operation context records."""

from __future__ import annotations

import pytest

from juggler import ModelDefinitionError, ObserverRegistrationError
from juggler.hooks import DeleteContext, ObserverRegistry, Query, QueryContext, SaveContext
from juggler.model import ModelBuilder


def _noop(ctx: object) -> None:
    return None


def _other(ctx: object) -> None:
    return None


def test_resolve_walks_lineage_base_first() -> None:
    parents = {"Child": "Base", "Grandchild": "Child"}
    registry = ObserverRegistry(parents.get)
    registry.register("Grandchild", "event", _other)
    registry.register("Base", "event", _noop)

    assert registry.lineage("Grandchild") == ("Base", "Child", "Grandchild")
    assert registry.resolve("Grandchild", "event") == (_noop, _other)
    assert registry.resolve("Base", "event") == (_noop,)
    assert registry.own("Grandchild", "event") == (_other,)


def test_resolve_returns_snapshot() -> None:
    registry = ObserverRegistry(lambda name: None)
    registry.register("Model", "event", _noop)

    snapshot = registry.resolve("Model", "event")
    registry.register("Model", "event", _other)

    assert snapshot == (_noop,)
    assert registry.count("Model", "event") == 2
    assert registry.count("Model") == 2


def test_operations_lists_own_operations_in_registration_order() -> None:
    registry = ObserverRegistry(lambda name: None)
    registry.register("Model", "after save", _noop)
    registry.register("Model", "query", _noop)
    registry.register("Model", "after save", _other)

    assert registry.operations("Model") == ("after save", "query")
    assert registry.operations("Unknown") == ()


def test_lineage_detects_cycles() -> None:
    registry = ObserverRegistry({"A": "B", "B": "A"}.get)

    with pytest.raises(ModelDefinitionError, match="cycle"):
        registry.resolve("A", "event")


def test_register_rejects_bad_arguments() -> None:
    registry = ObserverRegistry(lambda name: None)

    with pytest.raises(ObserverRegistrationError, match="callable"):
        registry.register("Model", "event", None)  # type: ignore[arg-type]
    with pytest.raises(ObserverRegistrationError, match="blank"):
        registry.register("Model", "", _noop)
    with pytest.raises(ValueError):
        ObserverRegistry("not callable")  # type: ignore[arg-type]


def test_query_coerce_normalizes_mappings_and_rejects_unknown_keys() -> None:
    query = Query.coerce({"where": {"name": "a"}, "limit": 2, "skip": 1})

    assert query.where == {"name": "a"}
    assert query.start == 1
    assert query.to_dict() == {"where": {"name": "a"}, "limit": 2, "skip": 1}
    assert Query.coerce(None).to_dict() == {"where": {}}

    with pytest.raises(ValueError, match="unsupported filter keys"):
        Query.coerce({"wher": {}})
    with pytest.raises(TypeError):
        Query.coerce({"limit": "ten"})
    with pytest.raises(ValueError):
        Query.coerce({"offset": -1})


def test_query_coerce_copies_caller_where() -> None:
    where = {"name": {"inq": ["a", "b"]}}

    query = Query.coerce({"where": where})
    query.where["name"]["inq"].append("c")

    assert where == {"name": {"inq": ["a", "b"]}}


def test_context_snapshots_render_model_label_and_fields() -> None:
    model = ModelBuilder().define("Widget", {"name": str})
    instance = model({"name": "w"})

    assert QueryContext(model=model, query=Query(where={"id": 1})).to_dict() == {
        "model": "[Model Widget]",
        "query": {"where": {"id": 1}},
    }
    assert SaveContext(model=model, instance=instance).to_dict() == {
        "model": "[Model Widget]",
        "instance": {"name": "w", "id": None},
    }
    assert SaveContext(model=model, data={"name": "x"}, where={"id": 1}).to_dict() == {
        "model": "[Model Widget]",
        "where": {"id": 1},
        "data": {"name": "x"},
    }
    assert DeleteContext(model=model).to_dict() == {"model": "[Model Widget]", "where": {}}


def test_query_context_snapshot_accepts_replaced_mapping() -> None:
    model = ModelBuilder().define("Widget")
    context = QueryContext(model=model)
    context.query = {"where": {"id": "2"}}  # type: ignore[assignment]

    assert context.to_dict() == {"model": "[Model Widget]", "query": {"where": {"id": "2"}}}
