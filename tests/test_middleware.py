"""MiddlewareTable tests: construction, payload validation, concurrent evaluation."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from gatebus.exceptions import MiddlewareConfigError, PayloadValidationError
from gatebus.middleware import MiddlewareTable, PredicateError, as_async_predicate


class TestConstruction:
    def test_events_are_table_keys(self) -> None:
        table = MiddlewareTable({"a": [lambda p: True], "b": []})
        assert table.events() == ["a", "b"]
        assert len(table) == 2
        assert "a" in table
        assert "c" not in table

    def test_empty_chain_is_still_gated(self) -> None:
        table = MiddlewareTable({"a": []})
        assert table.is_gated("a") is True
        assert table.chain("a") == ()

    def test_unknown_event_has_empty_chain(self) -> None:
        table = MiddlewareTable({})
        assert table.is_gated("missing") is False
        assert table.chain("missing") == ()

    def test_non_callable_predicate_rejected(self) -> None:
        with pytest.raises(MiddlewareConfigError) as exc_info:
            MiddlewareTable({"a": [lambda p: True, "not callable"]})
        assert exc_info.value.details == {"event": "a", "index": 1}

    def test_unusable_payload_type_rejected(self) -> None:
        class Opaque:
            pass

        with pytest.raises(MiddlewareConfigError) as exc_info:
            MiddlewareTable({"e": []}, payload_types={"e": Opaque})
        assert exc_info.value.details["event"] == "e"
        assert "Opaque" in exc_info.value.details["payload_type"]

    def test_non_string_event_rejected(self) -> None:
        with pytest.raises(MiddlewareConfigError):
            MiddlewareTable({1: [lambda p: True]})

    def test_source_mapping_changes_do_not_leak(self) -> None:
        chains = {"a": [lambda p: True]}
        table = MiddlewareTable(chains)
        chains["a"].append(lambda p: False)
        chains["b"] = []
        assert len(table.chain("a")) == 1
        assert "b" not in table


class TestAsyncPredicate:
    async def test_sync_predicate_wrapped(self) -> None:
        wrapped = as_async_predicate(lambda p: p > 1)
        assert await wrapped(2) is True
        assert await wrapped(0) is False

    async def test_async_predicate_wrapped(self) -> None:
        async def check(p: Any) -> bool:
            await asyncio.sleep(0)
            return p == "ok"

        wrapped = as_async_predicate(check)
        assert await wrapped("ok") is True
        assert wrapped.__qualname__.endswith("check")

    async def test_truthy_results_coerced_to_bool(self) -> None:
        wrapped = as_async_predicate(lambda p: p)
        assert await wrapped([1]) is True
        assert await wrapped("") is False


class TestEvaluate:
    async def test_results_in_chain_order(self) -> None:
        table = MiddlewareTable({"e": [lambda p: True, lambda p: False, lambda p: True]})
        assert await table.evaluate("e", None) == [True, False, True]

    async def test_unmiddled_event_evaluates_empty(self) -> None:
        assert await MiddlewareTable({}).evaluate("e", None) == []

    async def test_predicates_run_concurrently(self) -> None:
        started: list = []

        async def slow(name: str):
            started.append(name)
            await asyncio.sleep(0.01)
            return True

        table = MiddlewareTable({"e": [lambda p: slow("a"), lambda p: slow("b")]})
        task = asyncio.ensure_future(table.evaluate("e", None))
        for _ in range(3):
            await asyncio.sleep(0)
        assert started == ["a", "b"]
        assert await task == [True, True]

    async def test_every_predicate_sees_payload(self) -> None:
        seen: list = []
        table = MiddlewareTable({
            "e": [lambda p: seen.append(("a", p)) or True, lambda p: seen.append(("b", p)) or True],
        })
        await table.evaluate("e", {"id": 1})
        assert seen == [("a", {"id": 1}), ("b", {"id": 1})]

    async def test_raising_predicate_surfaces_predicate_error(self) -> None:
        def explode(p: Any) -> bool:
            raise KeyError("missing")

        table = MiddlewareTable({"e": [lambda p: True, explode]})
        with pytest.raises(PredicateError) as exc_info:
            await table.evaluate("e", None)
        assert exc_info.value.predicate.endswith("explode")
        assert isinstance(exc_info.value.error, KeyError)


class TestValidate:
    def test_no_declared_type_accepts_anything(self) -> None:
        table = MiddlewareTable({"e": []})
        table.validate("e", object())

    def test_strict_type_rejects_coercible_value(self) -> None:
        table = MiddlewareTable({"e": []}, payload_types={"e": int})
        table.validate("e", 5)
        with pytest.raises(PayloadValidationError) as exc_info:
            table.validate("e", "5")
        assert exc_info.value.event == "e"
        assert exc_info.value.errors

    def test_union_type(self) -> None:
        table = MiddlewareTable({"e": []}, payload_types={"e": str | int})
        table.validate("e", "blocked")
        table.validate("e", 0)
        with pytest.raises(PayloadValidationError):
            table.validate("e", 1.5)

    def test_type_for_unmiddled_event(self) -> None:
        table = MiddlewareTable({}, payload_types={"free": dict})
        assert table.is_gated("free") is False
        with pytest.raises(PayloadValidationError):
            table.validate("free", [])
