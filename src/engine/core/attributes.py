"""
どこで: `engine.core` の属性ストア。
何を: 事前宣言された名前付き値の get/set を、任意のゲッタ/セッタフックと
      トップレベル呼び出し単位の共有キャッシュ（AttributeCache）付きで統一的に扱う。
なぜ: 一部の属性（transform/scale など）が単純な保存値ではなく計算で裏付けられるため、
      呼び出し側からは区別なく `get`/`set` できるようにする。

設計メモ:
- フックは名前規約ではなく `AttributeSchema`（名前 → 定義）で明示登録する。
- キャッシュはトップレベル呼び出しごとに新規作成し、同じ呼び出し内で発火する全フックへ
  引数で引き回す（ノードには保持しない）。フックからストアへ再入するときは `cache=` を渡す。
- 未宣言名の読み出しは None、未宣言かつフック無しの書き込みは黙って無視する（例外にしない）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Iterator, Mapping

logger = logging.getLogger(__name__)

# 1 回のトップレベル get/set の間だけ生きる共有スクラッチ領域
AttributeCache = dict[str, Any]

# getter(owner, stored_value, cache) -> value
Getter = Callable[[Any, Any, AttributeCache], Any]
# setter(owner, new_value, old_value, cache) -> value to store
Setter = Callable[[Any, Any, Any, AttributeCache], Any]

_MISSING: Any = object()


@dataclass(frozen=True, slots=True)
class AttributeDefinition:
    """属性 1 件の宣言。

    `stored=False` の属性は仮想属性で、値スロットを持たずフックのみで振る舞う。
    """

    name: str
    default: Any = None
    getter: Getter | None = None
    setter: Setter | None = None
    stored: bool = True


class AttributeSchema:
    """ノード型ごとの属性レジストリ（名前 → `AttributeDefinition`）。

    - 登録順を保持する（既定値のシード順に使う）。
    - 同名の再定義はエラー。派生型は `extend()` で上書き込みの新スキーマを作る。
    """

    def __init__(self, definitions: Iterable[AttributeDefinition] = ()) -> None:
        self._registry: dict[str, AttributeDefinition] = {}
        for d in definitions:
            self._add(d)

    def _add(self, definition: AttributeDefinition) -> None:
        if not isinstance(definition.name, str) or not definition.name:
            raise ValueError("属性名は空でない str である必要があります")
        if definition.name in self._registry:
            raise ValueError(f"属性 '{definition.name}' は既に定義されています")
        self._registry[definition.name] = definition

    def define(
        self,
        name: str,
        default: Any = None,
        *,
        getter: Getter | None = None,
        setter: Setter | None = None,
        stored: bool = True,
    ) -> "AttributeSchema":
        """属性を 1 件定義する（チェーン可能）。"""
        self._add(AttributeDefinition(name, default, getter, setter, stored))
        return self

    def extend(self, *definitions: AttributeDefinition) -> "AttributeSchema":
        """既存定義をコピーし、同名は差し替え/新名は追加した新スキーマを返す。"""
        merged = dict(self._registry)
        for d in definitions:
            merged[d.name] = d
        return AttributeSchema(merged.values())

    def get(self, name: str) -> AttributeDefinition | None:
        return self._registry.get(name)

    def is_defined(self, name: str) -> bool:
        return name in self._registry

    def defaults(self) -> dict[str, Any]:
        """値スロットを持つ属性の既定値（登録順）。"""
        return {n: d.default for n, d in self._registry.items() if d.stored}

    def __iter__(self) -> Iterator[AttributeDefinition]:
        return iter(self._registry.values())

    def __len__(self) -> int:
        return len(self._registry)


class AttributeStore:
    """宣言済み属性の値と、フック付き get/set ディスパッチ。

    Parameters
    ----------
    schema : AttributeSchema
        属性定義。
    overrides : Mapping[str, Any] | None
        既定値を上書きする初期値（フックを通さず直接シードする）。
    owner : Any
        フックの第 1 引数および `set()` の戻り値となるオブジェクト。省略時はストア自身。
    """

    def __init__(
        self,
        schema: AttributeSchema,
        overrides: Mapping[str, Any] | None = None,
        *,
        owner: Any = None,
    ) -> None:
        self._schema = schema
        self._owner = self if owner is None else owner
        self._values: dict[str, Any] = schema.defaults()
        for name, value in (overrides or {}).items():
            if name in self._values:
                self._values[name] = value
            else:
                logger.debug("ignoring override for undeclared attribute %r", name)

    @property
    def schema(self) -> AttributeSchema:
        return self._schema

    # ---- read ---------------------------------------------------------
    def get(self, name: str, *, cache: AttributeCache | None = None) -> Any:
        """属性値を返す。ゲッタがあればその結果（保存値は変更しない）。"""
        if cache is None:
            cache = {}
        definition = self._schema.get(name)
        stored = self._values.get(name)
        if definition is not None and definition.getter is not None:
            return definition.getter(self._owner, stored, cache)
        return stored

    # ---- write --------------------------------------------------------
    def set(
        self,
        name: str | Mapping[str, Any],
        value: Any = _MISSING,
        *,
        cache: AttributeCache | None = None,
    ) -> Any:
        """属性へ書き込み、オーナーを返す（チェーン用）。

        `name` に Mapping を渡すと反復順に各ペアを同じ経路で適用する（一括形式）。
        一括形式の全ペアは 1 つのキャッシュを共有する。
        """
        if cache is None:
            cache = {}
        if isinstance(name, Mapping):
            if value is not _MISSING:
                raise TypeError("一括形式では value を同時に指定できません")
            for key, v in name.items():
                self._set_one(key, v, cache)
            return self._owner
        if value is _MISSING:
            raise TypeError(f"属性 '{name}' への書き込みには value が必要です")
        self._set_one(name, value, cache)
        return self._owner

    def _set_one(self, name: str, value: Any, cache: AttributeCache) -> None:
        definition = self._schema.get(name)
        if definition is None:
            return
        has_slot = definition.stored
        if definition.setter is not None:
            old = self._values.get(name)
            result = definition.setter(self._owner, value, old, cache)
            if has_slot:
                self._values[name] = result
            return
        if has_slot:
            self._values[name] = value

    # ---- introspection ------------------------------------------------
    def has(self, name: str) -> bool:
        """宣言済み（値スロットまたはフックあり）なら True。"""
        return self._schema.is_defined(name)

    def names(self) -> list[str]:
        return [d.name for d in self._schema]

    def snapshot(self) -> dict[str, Any]:
        """保存値のコピー（ゲッタは通さない）。"""
        return dict(self._values)


__all__ = [
    "AttributeCache",
    "AttributeDefinition",
    "AttributeSchema",
    "AttributeStore",
    "Getter",
    "Setter",
]
