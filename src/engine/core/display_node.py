"""
どこで: `engine.core` の表示ノード。
何を: AttributeStore と transform エンジンを束ね、`attr`/`get`/`set` で操作する
      シーンノードを提供する。opacity のクランプ、rotation の正規化、
      transform の遅延合成（メモ化）と分解、scale/transformOrigin の仮想属性を担う。
なぜ: 位置・回転・拡縮・シアー・ピボットを独立に書き換えつつ、派生する
      アフィン行列を常に整合した状態で取り出せるようにするため。

不変条件:
- プリミティブ 8 種（skew, scaleX, scaleY, rotation, x, y, transformOriginX/Y）の
  いずれかが書き込まれると、メモ化済み transform は次回読み出し時に再計算される。
- transform を直接書き込むと 6 プリミティブへ分解して書き戻し、入力行列の値コピーを
  メモとして保持する（最後に書かれた側が正）。
- transform の読み出しは毎回新しいリストを返す（呼び出し側が変更してもメモは不変）。
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from common.param_utils import clamp01
from common.types import Matrix6

from .attributes import AttributeCache, AttributeDefinition, AttributeSchema, AttributeStore
from .transform import compose, decompose, matrix_to_fields, parse_rotation

_MISSING: Any = object()

# transform に寄与するプリミティブ
TRANSFORM_PRIMITIVES: tuple[str, ...] = (
    "skew",
    "scaleX",
    "scaleY",
    "rotation",
    "x",
    "y",
    "transformOriginX",
    "transformOriginY",
)

_CACHE_KEY = "transform"


# ---- hooks -------------------------------------------------------------
def _set_opacity(node: "DisplayNode", value: float, old: float, cache: AttributeCache) -> float:
    return clamp01(value)


def _set_primitive(node: "DisplayNode", value: Any, old: Any, cache: AttributeCache) -> Any:
    node._invalidate_transform(cache)
    return value


def _set_rotation(node: "DisplayNode", value: float | str, old: float, cache: AttributeCache) -> float:
    node._invalidate_transform(cache)
    return parse_rotation(value)


def _get_transform(node: "DisplayNode", value: Any, cache: AttributeCache) -> Matrix6 | None:
    matrix = cache.get(_CACHE_KEY)
    if matrix is None:
        matrix = node._current_transform(cache)
        if matrix is None:
            return None
        cache[_CACHE_KEY] = matrix
    return list(matrix)


def _set_transform(
    node: "DisplayNode", value: Sequence[float] | None, old: Any, cache: AttributeCache
) -> None:
    if value is None:
        node._transform_memo = None
        node._transform_dirty = False
        cache.pop(_CACHE_KEY, None)
        return
    matrix = [float(v) for v in value]
    if len(matrix) != 6:
        raise ValueError(f"transform は 6 要素 (a, b, c, d, tx, ty) である必要があります: len={len(matrix)}")
    origin_x = node.get("transformOriginX", cache=cache)
    origin_y = node.get("transformOriginY", cache=cache)
    p = decompose(matrix, origin_x, origin_y)
    node.set(
        {
            "skew": p.skew,
            "scaleX": p.scale_x,
            "scaleY": p.scale_y,
            "rotation": p.rotation,
            "x": p.x,
            "y": p.y,
        },
        cache=cache,
    )
    # 分解結果の書き戻しで立った dirty を、入力行列そのもので上書きする
    node._transform_memo = matrix
    node._transform_dirty = False
    cache[_CACHE_KEY] = matrix


def _get_scale(node: "DisplayNode", value: Any, cache: AttributeCache) -> float | None:
    sx = node.get("scaleX", cache=cache)
    sy = node.get("scaleY", cache=cache)
    return sx if sx == sy else None


def _set_scale(node: "DisplayNode", value: float, old: Any, cache: AttributeCache) -> None:
    node.set({"scaleX": value, "scaleY": value}, cache=cache)


def _set_transform_origin(
    node: "DisplayNode", value: Sequence[float], old: Any, cache: AttributeCache
) -> None:
    origin_x, origin_y = value
    node.set({"transformOriginX": origin_x, "transformOriginY": origin_y}, cache=cache)


DISPLAY_SCHEMA = AttributeSchema(
    [
        AttributeDefinition("opacity", 1, setter=_set_opacity),
        AttributeDefinition("skew", 0, setter=_set_primitive),
        AttributeDefinition("scaleX", 1, setter=_set_primitive),
        AttributeDefinition("scaleY", 1, setter=_set_primitive),
        AttributeDefinition("rotation", 0, setter=_set_rotation),
        AttributeDefinition("x", 0, setter=_set_primitive),
        AttributeDefinition("y", 0, setter=_set_primitive),
        AttributeDefinition("transformOriginX", 0, setter=_set_primitive),
        AttributeDefinition("transformOriginY", 0, setter=_set_primitive),
        AttributeDefinition("transform", getter=_get_transform, setter=_set_transform, stored=False),
        AttributeDefinition("scale", getter=_get_scale, setter=_set_scale, stored=False),
        AttributeDefinition("transformOrigin", setter=_set_transform_origin, stored=False),
    ]
)


class DisplayNode:
    """算出属性を持つシーンノード。

    Parameters
    ----------
    schema : AttributeSchema | None
        属性定義。省略時は `DISPLAY_SCHEMA`（opacity/transform 系）。
        Mapping を渡した場合は `overrides` として扱う。
    overrides : Mapping[str, Any] | None
        既定値を上書きする初期値（`set()` と同じ経路で適用する）。

    Examples
    --------
    >>> node = DisplayNode()
    >>> node.set({"x": 10, "rotation": "90deg"}).get("x")
    10
    """

    def __init__(
        self,
        schema: AttributeSchema | Mapping[str, Any] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        if isinstance(schema, Mapping) and overrides is None:
            schema, overrides = None, schema
        # transform のメモ。None は「一度もプリミティブが書かれていない」状態
        self._transform_memo: Matrix6 | None = None
        self._transform_dirty = False
        self._store = AttributeStore(schema if schema is not None else DISPLAY_SCHEMA, owner=self)
        # 初期値もセッタを通す（opacity/rotation の不変条件と transform の無効化を維持）
        if overrides:
            self._store.set(overrides)

    # ---- public surface ----------------------------------------------
    def get(self, name: str, *, cache: AttributeCache | None = None) -> Any:
        return self._store.get(name, cache=cache)

    def set(
        self,
        name: str | Mapping[str, Any],
        value: Any = _MISSING,
        *,
        cache: AttributeCache | None = None,
    ) -> "DisplayNode":
        if value is _MISSING:
            return self._store.set(name, cache=cache)
        return self._store.set(name, value, cache=cache)

    def attr(self, name: str | Mapping[str, Any], value: Any = _MISSING) -> Any:
        """単一アクセサ: `attr(name)` は読み出し、`attr(name, v)`/`attr(mapping)` は書き込み。"""
        if isinstance(name, Mapping) or value is not _MISSING:
            return self.set(name, value)
        return self.get(name)

    @property
    def store(self) -> AttributeStore:
        return self._store

    def to_update_message(self, node_id: Any) -> dict[str, Any]:
        """同期層向けの update メッセージ（matrix は transform が未確定なら省略）。"""
        attributes: dict[str, Any] = {"opacity": self.get("opacity")}
        matrix = self.get("transform")
        if matrix is not None:
            attributes["matrix"] = matrix_to_fields(matrix)
        return {"id": node_id, "attributes": attributes}

    # ---- transform memo ----------------------------------------------
    def _invalidate_transform(self, cache: AttributeCache) -> None:
        self._transform_dirty = True
        cache.pop(_CACHE_KEY, None)

    def _current_transform(self, cache: AttributeCache) -> Matrix6 | None:
        if self._transform_dirty:
            # 引数順は compose() と TRANSFORM_PRIMITIVES で揃えてある
            self._transform_memo = compose(*(self._store.get(n, cache=cache) for n in TRANSFORM_PRIMITIVES))
            self._transform_dirty = False
        return self._transform_memo

    def __repr__(self) -> str:  # pragma: no cover - 表示用
        return f"DisplayNode({self._store.snapshot()!r})"


__all__ = ["DISPLAY_SCHEMA", "TRANSFORM_PRIMITIVES", "DisplayNode"]
