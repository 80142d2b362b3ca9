from __future__ import annotations

import math

import numpy as np
import pytest

from engine.core.display_node import TRANSFORM_PRIMITIVES, DisplayNode
from engine.core.transform import compose


def _close(actual, expected, atol: float = 1e-12) -> None:
    np.testing.assert_allclose(actual, expected, rtol=0, atol=atol)


class TestOpacity:
    def test_defaults_to_1(self, node: DisplayNode) -> None:
        assert node.get("opacity") == 1

    @pytest.mark.parametrize("value, expected", [(0, 0), (1, 1), (0.7, 0.7), (-1.2, 0), (123, 1)])
    def test_is_clamped(self, node: DisplayNode, value: float, expected: float) -> None:
        node.set("opacity", value)
        assert node.get("opacity") == expected

    def test_nan_is_rejected_and_value_kept(self, node: DisplayNode) -> None:
        node.set("opacity", 0.4)
        with pytest.raises(ValueError):
            node.set("opacity", math.nan)
        assert node.get("opacity") == 0.4

    @pytest.mark.parametrize("bad", [math.nan, math.inf])
    def test_non_finite_rotation_is_rejected(self, node: DisplayNode, bad: float) -> None:
        with pytest.raises(ValueError):
            node.set("rotation", bad)
        assert node.get("rotation") == 0


class TestPrimitives:
    def test_defaults(self, node: DisplayNode) -> None:
        assert node.get("skew") == 0
        assert node.get("rotation") == 0
        assert (node.get("x"), node.get("y")) == (0, 0)
        assert (node.get("scaleX"), node.get("scaleY")) == (1, 1)
        assert (node.get("transformOriginX"), node.get("transformOriginY")) == (0, 0)

    def test_skew_is_reflected_by_transform(self, node: DisplayNode) -> None:
        node.set("skew", 1.23)
        assert node.get("skew") == 1.23
        assert node.get("transform") == [1, 0, 1.23, 1, 0, 0]

    def test_scale_is_reflected_by_transform(self, node: DisplayNode) -> None:
        node.set({"scaleX": 1.23, "scaleY": 4.56})
        assert (node.get("scaleX"), node.get("scaleY")) == (1.23, 4.56)
        assert node.get("transform") == [1.23, 0, 0, 4.56, 0, 0]

    def test_translation_is_reflected_by_transform(self, node: DisplayNode) -> None:
        node.set({"x": 12.3, "y": -45.67})
        assert (node.get("x"), node.get("y")) == (12.3, -45.67)
        assert node.get("transform") == [1, 0, 0, 1, 12.3, -45.67]

    def test_rotation_is_reflected_by_transform(self, node: DisplayNode) -> None:
        angle = 3 / 4 * math.pi
        node.set("rotation", angle)
        c, s = math.cos(angle), math.sin(angle)
        _close(node.get("transform"), [c, s, -s, c, 0, 0])

    @pytest.mark.parametrize(
        "value, expected",
        [
            (0, 0),
            (1, 1),
            (6.283185307179585, 6.283185307179585),
            (2 * math.pi, 0),
            (-2.5 * math.pi, 1.5 * math.pi),
            (4 * math.pi + 0.5, 0.5),
            ("45deg", math.pi / 4),
            ("1.25turn", math.pi * 0.5),
            ("-.5rad", 2 * math.pi - 0.5),
            ("-200grad", math.pi),
        ],
    )
    def test_rotation_is_normalized(self, node: DisplayNode, value, expected) -> None:
        node.set("rotation", value)
        assert node.get("rotation") == expected


class TestScaleAlias:
    def test_sets_both_axes(self, node: DisplayNode) -> None:
        node.set("scale", 54.3)
        assert (node.get("scaleX"), node.get("scaleY")) == (54.3, 54.3)
        assert node.get("scale") == 54.3

    def test_reads_none_when_axes_differ(self, node: DisplayNode) -> None:
        node.set({"scaleX": 2, "scaleY": 3})
        assert node.get("scale") is None

    def test_is_reflected_by_transform(self, node: DisplayNode) -> None:
        node.set("scale", 1.23)
        assert node.get("transform") == [1.23, 0, 0, 1.23, 0, 0]


class TestTransform:
    def test_defaults_to_none(self, node: DisplayNode) -> None:
        assert node.get("transform") is None

    def test_set_copies_value(self, node: DisplayNode) -> None:
        value = [1, 2, 3, 4, 5, 6]
        node.set("transform", value)
        transform = node.get("transform")
        assert transform == value
        assert transform is not value
        value[0] = 99
        assert node.get("transform") == [1, 2, 3, 4, 5, 6]

    def test_read_returns_distinct_lists(self, node: DisplayNode) -> None:
        node.set("x", 5)
        first = node.get("transform")
        first[4] = 1000
        second = node.get("transform")
        assert second == [1, 0, 0, 1, 5, 0]
        assert second is not first

    def test_set_overwrites_existing_value(self, node: DisplayNode) -> None:
        node.set("transform", [1, 0, 0, 1, 0, 0])
        node.set("transform", [1, 2, 3, 4, 5, 6])
        assert node.get("transform") == [1, 2, 3, 4, 5, 6]

    def test_primitive_write_invalidates_memo(self, node: DisplayNode) -> None:
        node.set("transform", [2, 0, 0, 2, 0, 0])
        node.set("x", 7)
        _close(node.get("transform"), [2, 0, 0, 2, 7, 0])

    def test_composition_order_is_fixed(self, node: DisplayNode) -> None:
        skew, rotation, x, y, sx, sy = 0.5, 2, -200, 123, 4, -0.5
        # 意図的に異なる順序で設定する
        node.set("rotation", rotation)
        node.set({"x": x, "y": y})
        node.set({"scaleX": sx, "scaleY": sy})
        node.set("skew", skew)
        _close(node.get("transform"), compose(skew, sx, sy, rotation, x, y))

    def test_extracts_primitives(self, node: DisplayNode) -> None:
        sx, sy, skew, rotation, x, y = 1.5, 3.45, 0.777, math.pi * 1.23, 98, -67
        node.set("transform", compose(skew, sx, sy, rotation, x, y))
        assert node.get("scaleX") == pytest.approx(sx, abs=1e-12)
        assert node.get("scaleY") == pytest.approx(sy, abs=1e-12)
        assert node.get("skew") == pytest.approx(skew, abs=1e-12)
        assert node.get("rotation") == pytest.approx(rotation, abs=1e-12)
        assert node.get("x") == pytest.approx(x, abs=1e-12)
        assert node.get("y") == pytest.approx(y, abs=1e-12)

    def test_rejects_wrong_length(self, node: DisplayNode) -> None:
        with pytest.raises(ValueError):
            node.set("transform", [1, 0, 0, 1])

    def test_none_resets_memo(self, node: DisplayNode) -> None:
        node.set("x", 1)
        node.set("transform", None)
        assert node.get("transform") is None
        assert node.get("x") == 1


class TestTransformOrigin:
    def test_defaults_to_zero(self, node: DisplayNode) -> None:
        assert node.get("transformOriginX") == 0
        assert node.get("transformOriginY") == 0

    def test_alias_sets_both_axes(self, node: DisplayNode) -> None:
        node.set("transformOrigin", [20, -40])
        assert (node.get("transformOriginX"), node.get("transformOriginY")) == (20, -40)

    @pytest.mark.parametrize("use_alias", [False, True])
    def test_is_reflected_by_transform(self, node: DisplayNode, use_alias: bool) -> None:
        node.set("rotation", math.pi)
        node.get("transform")  # ここで一度計算させる
        if use_alias:
            node.set("transformOrigin", [30, -40])
        else:
            node.set({"transformOriginX": 30, "transformOriginY": -40})
        # 原点 (30, -40) 周りに π 回転: tx = 2*30, ty = 2*(-40)
        _close(node.get("transform"), [-1, 0, 0, -1, 60, -80])

    def test_complex_transformation(self, node: DisplayNode) -> None:
        node.set("rotation", 2)
        node.set({"x": -200, "y": 123})
        node.set({"transformOriginX": -12.3, "transformOriginY": 98})
        node.set({"scaleX": 4, "scaleY": -0.5})
        node.set("skew", 0.5)
        _close(
            node.get("transform"),
            [
                -1.6645873461885696,
                3.637189707302727,
                -0.37764495968144396,
                2.0266682719249345,
                -277.3299982725778,
                245.34623840901355,
            ],
        )

    def test_extracts_primitives_using_origin(self, node: DisplayNode) -> None:
        node.set("transformOrigin", [-12.3, 98])
        node.set(
            "transform",
            [
                -1.6645873461885696,
                3.637189707302727,
                -0.37764495968144396,
                2.0266682719249345,
                -277.3299982725778,
                245.34623840901355,
            ],
        )
        assert node.get("scaleX") == pytest.approx(4, abs=1e-12)
        assert node.get("scaleY") == pytest.approx(-0.5, abs=1e-12)
        assert node.get("skew") == pytest.approx(0.5, abs=1e-12)
        assert node.get("rotation") == pytest.approx(2, abs=1e-12)
        assert node.get("x") == pytest.approx(-200, abs=1e-12)
        assert node.get("y") == pytest.approx(123, abs=1e-12)


class TestConstructionAndAccessors:
    def test_overrides_go_through_setters(self) -> None:
        n = DisplayNode({"opacity": 5, "rotation": "90deg", "x": 3})
        assert n.get("opacity") == 1
        assert n.get("rotation") == math.pi / 2
        _close(n.get("transform"), [0, 1, -1, 0, 3, 0])

    def test_attr_reads_and_writes(self, node: DisplayNode) -> None:
        assert node.attr("x", 4) is node
        assert node.attr("x") == 4
        assert node.attr({"y": 2}) is node
        assert node.attr("y") == 2

    def test_to_update_message(self, node: DisplayNode) -> None:
        assert node.to_update_message(1) == {"id": 1, "attributes": {"opacity": 1}}
        node.set({"x": 10, "y": 20, "opacity": 0.5})
        msg = node.to_update_message(1)
        assert msg["attributes"]["opacity"] == 0.5
        assert msg["attributes"]["matrix"] == {"a": 1, "b": 0, "c": 0, "d": 1, "tx": 10, "ty": 20}


@pytest.mark.parametrize("name", TRANSFORM_PRIMITIVES)
def test_every_primitive_write_invalidates_transform(node: DisplayNode, name: str) -> None:
    node.set("transform", [1, 0, 0, 1, 0, 0])
    node.set(name, 0.5)
    assert node.get("transform") == pytest.approx(compose(*_primitives(node)))


def _primitives(node: DisplayNode) -> list:
    return [node.get(n) for n in TRANSFORM_PRIMITIVES]
