"""Tests for the test-operation vocabulary.

Validates wire parsing, arity checks, immutability, and the generic
method-call fallback.
"""

from __future__ import annotations

import dataclasses

import pytest

from render_harness.errors import OperationError
from render_harness.ops.operations import (
    AddCustomLayer,
    AddImage,
    MethodCall,
    Operation,
    PauseSource,
    SetStyle,
    Sleep,
    UpdateFakeCanvas,
    Wait,
    parse_operation,
    parse_operations,
)


# ---------------------------------------------------------------------------
# Parsing known kinds
# ---------------------------------------------------------------------------


class TestParseKnownKinds:
    def test_wait_without_duration(self) -> None:
        op = parse_operation(["wait"])
        assert op == Wait()
        assert op.duration_ms is None

    def test_wait_with_duration(self) -> None:
        assert parse_operation(["wait", 250]) == Wait(duration_ms=250)

    def test_wait_with_null_duration_is_load_wait(self) -> None:
        assert parse_operation(["wait", None]) == Wait()

    def test_sleep(self) -> None:
        assert parse_operation(["sleep", 100]) == Sleep(duration_ms=100)

    def test_add_image_defaults_options(self) -> None:
        op = parse_operation(["addImage", "marker", "image/marker.png"])
        assert op == AddImage(image_id="marker", path="image/marker.png")
        assert op.options == {}

    def test_add_image_with_options(self) -> None:
        op = parse_operation(["addImage", "marker", "image/marker.png", {"sdf": True}])
        assert isinstance(op, AddImage)
        assert op.options == {"sdf": True}

    def test_add_custom_layer(self) -> None:
        assert parse_operation(["addCustomLayer", "tent-3d"]) == AddCustomLayer("tent-3d")
        op = parse_operation(["addCustomLayer", "tent-3d", "roads"])
        assert op.before == "roads"

    def test_update_fake_canvas(self) -> None:
        op = parse_operation(["updateFakeCanvas", "canvas", "a.png", "b.png"])
        assert op == UpdateFakeCanvas("canvas", "a.png", "b.png")

    def test_set_style_url_and_inline(self) -> None:
        assert parse_operation(["setStyle", "local://night.json"]).style == "local://night.json"
        inline = {"version": 8, "sources": {}, "layers": []}
        assert parse_operation(["setStyle", inline]) == SetStyle(inline)

    def test_pause_source(self) -> None:
        assert parse_operation(["pauseSource", "vector"]) == PauseSource("vector")

    def test_operation_instances_pass_through(self) -> None:
        op = Wait(duration_ms=10)
        assert parse_operation(op) is op


# ---------------------------------------------------------------------------
# Generic fallback
# ---------------------------------------------------------------------------


class TestMethodCall:
    def test_unknown_kind_becomes_method_call(self) -> None:
        op = parse_operation(["setZoom", 4])
        assert isinstance(op, MethodCall)
        assert op.method == "setZoom"
        assert op.args == (4,)
        assert op.kind == "setZoom"

    def test_method_call_without_args(self) -> None:
        op = parse_operation(["triggerRepaint"])
        assert op == MethodCall("triggerRepaint")

    def test_method_call_keeps_structured_args(self) -> None:
        op = parse_operation(["jumpTo", {"center": [0, 0], "zoom": 2}])
        assert op.args == ({"center": [0, 0], "zoom": 2},)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    @pytest.mark.parametrize("raw", [[], "wait", None, 42, [42]])
    def test_malformed_entry(self, raw) -> None:
        with pytest.raises(OperationError):
            parse_operation(raw)

    @pytest.mark.parametrize(
        "raw",
        [
            ["wait", 1, 2],
            ["sleep"],
            ["addImage", "only-id"],
            ["addCustomLayer"],
            ["updateFakeCanvas", "canvas", "a.png"],
            ["setStyle"],
            ["pauseSource", "a", "b"],
        ],
    )
    def test_wrong_arity(self, raw) -> None:
        with pytest.raises(OperationError, match="argument"):
            parse_operation(raw)

    def test_wait_rejects_non_number(self) -> None:
        with pytest.raises(OperationError, match="must be a number"):
            parse_operation(["wait", "100"])

    def test_wait_rejects_bool(self) -> None:
        with pytest.raises(OperationError, match="must be a number"):
            parse_operation(["wait", True])

    def test_sleep_rejects_negative(self) -> None:
        with pytest.raises(OperationError, match=">= 0"):
            parse_operation(["sleep", -5])

    def test_wait_rejects_negative(self) -> None:
        with pytest.raises(OperationError, match=">= 0"):
            parse_operation(["wait", -100])

    @pytest.mark.parametrize("kind", ["wait", "sleep"])
    @pytest.mark.parametrize("duration", [float("nan"), float("inf")])
    def test_non_finite_duration_rejected(self, kind, duration) -> None:
        with pytest.raises(OperationError, match="finite"):
            parse_operation([kind, duration])

    def test_add_image_rejects_non_mapping_options(self) -> None:
        with pytest.raises(OperationError, match="mapping"):
            parse_operation(["addImage", "marker", "m.png", [1, 2]])

    def test_set_style_rejects_number(self) -> None:
        with pytest.raises(OperationError, match="setStyle"):
            parse_operation(["setStyle", 8])

    def test_pause_source_rejects_empty_id(self) -> None:
        with pytest.raises(OperationError, match="non-empty string"):
            parse_operation(["pauseSource", ""])

    def test_operation_errors_are_value_errors(self) -> None:
        with pytest.raises(ValueError):
            parse_operation(["sleep"])


class TestParseOperations:
    def test_none_means_no_operations(self) -> None:
        assert parse_operations(None) == ()

    def test_keeps_order(self) -> None:
        ops = parse_operations([["setStyle", "s.json"], ["wait"], ["pauseSource", "v"]])
        assert [op.kind for op in ops] == ["setStyle", "wait", "pauseSource"]

    def test_error_names_index(self) -> None:
        with pytest.raises(OperationError, match=r"operations\[1\]"):
            parse_operations([["wait"], ["sleep", "soon"]])

    def test_rejects_non_list(self) -> None:
        with pytest.raises(OperationError, match="must be a list"):
            parse_operations("wait")


# ---------------------------------------------------------------------------
# Dataclass behaviour
# ---------------------------------------------------------------------------


class TestOperationDataclasses:
    def test_all_are_operations(self) -> None:
        ops = [
            Wait(),
            Sleep(1),
            AddImage("a", "a.png"),
            AddCustomLayer("x"),
            UpdateFakeCanvas("c", "a.png", "b.png"),
            SetStyle("s.json"),
            PauseSource("v"),
            MethodCall("setZoom", (1,)),
        ]
        assert all(isinstance(op, Operation) for op in ops)

    def test_frozen(self) -> None:
        op = Wait(duration_ms=5)
        with pytest.raises(dataclasses.FrozenInstanceError):
            op.duration_ms = 10  # type: ignore[misc]

    def test_sleep_direct_construction_validates(self) -> None:
        with pytest.raises(OperationError):
            Sleep(duration_ms=-1)

    def test_wait_direct_construction_validates(self) -> None:
        with pytest.raises(OperationError):
            Wait(duration_ms=-1)
        with pytest.raises(OperationError):
            Wait(duration_ms=float("nan"))

    @pytest.mark.parametrize(
        "wire",
        [
            ["wait"],
            ["wait", 250],
            ["addImage", "marker", "m.png", {"pixelRatio": 2}],
            ["addCustomLayer", "tent-3d", "roads"],
            ["updateFakeCanvas", "canvas", "a.png", "b.png"],
            ["setZoom", 4],
        ],
    )
    def test_to_wire_reproduces_fixture_form(self, wire) -> None:
        assert parse_operation(wire).to_wire() == wire
