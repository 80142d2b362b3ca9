"""
どこで: `engine.render` のバックエンド境界。
何を: 同期層が要求するバックエンド契約（`SceneBackend`/`PrimitiveHandle`）と、
      ピクセルを描かずに木構造と変換値だけを保持するインメモリ実装を提供。
なぜ: canvas/SVG/GPU 等の具体実装から同期アルゴリズムを切り離し、
      ヘッドレス環境（テスト/サーバ）でもシーン木を検証できるようにするため。
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, runtime_checkable


@runtime_checkable
class PrimitiveHandle(Protocol):
    """バックエンドのノード。子リストはバックエンドが所有する。"""

    def add_child(self, child: Any) -> None: ...

    def remove_child(self, child: Any) -> None: ...


@runtime_checkable
class SceneBackend(Protocol):
    """同期層から見たバックエンド。"""

    def create_primitive(self, type: str | None) -> PrimitiveHandle: ...

    def set_transform(
        self, handle: Any, a: Any, b: Any, c: Any, d: Any, tx: Any, ty: Any
    ) -> None: ...


class MemoryPrimitive:
    """木構造と生の変換フィールドのみを保持するプリミティブ。"""

    def __init__(self, type: str | None = None) -> None:
        self.type = type
        self.parent: MemoryPrimitive | None = None
        self.children: list[MemoryPrimitive] = []
        self.transform: dict[str, Any] = {"a": 1, "b": 0, "c": 0, "d": 1, "tx": 0, "ty": 0}
        self.attributes: dict[str, Any] = {}

    def add_child(self, child: "MemoryPrimitive") -> None:
        # 既に別の親に付いていれば付け替える
        if child.parent is not None:
            child.parent.remove_child(child)
        self.children.append(child)
        child.parent = self

    def remove_child(self, child: "MemoryPrimitive") -> None:
        if child in self.children:
            self.children.remove(child)
            child.parent = None

    def __repr__(self) -> str:  # pragma: no cover - 表示用
        return f"MemoryPrimitive(type={self.type!r}, children={len(self.children)})"


class MemoryBackend:
    """`SceneBackend` のインメモリ実装。

    生成したプリミティブはまず最上位コンテナ `root` が所有し、`add_child` で
    別の親へ付け替えられる。
    """

    def __init__(self) -> None:
        self.root = MemoryPrimitive("stage")
        self.created: list[MemoryPrimitive] = []

    def create_primitive(self, type: str | None) -> MemoryPrimitive:
        handle = MemoryPrimitive(type)
        self.root.add_child(handle)
        self.created.append(handle)
        return handle

    def set_transform(
        self, handle: MemoryPrimitive, a: Any, b: Any, c: Any, d: Any, tx: Any, ty: Any
    ) -> None:
        handle.transform.update(a=a, b=b, c=c, d=d, tx=tx, ty=ty)

    def apply_attributes(self, handle: MemoryPrimitive, attributes: Mapping[str, Any]) -> None:
        handle.attributes.update(attributes)


__all__ = ["PrimitiveHandle", "SceneBackend", "MemoryPrimitive", "MemoryBackend"]
