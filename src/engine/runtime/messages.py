"""
どこで: `engine.runtime` のメッセージ定義。
何を: 同期層が消費する create/update/remove メッセージ（`SceneMessage`）と種別、
      素の Mapping からの変換（`coerce_message`）を提供。
なぜ: ホストがシリアライズしたメッセージ（dict）と型付きメッセージのどちらでも
      同じ経路で扱い、必須キー欠落を早期に検出するため。

スキーマ::

    {id, type, parent, attributes: {matrix?: {a, b, c, d, tx, ty}, ...}}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

from common.types import NodeId


class MessageKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    REMOVE = "remove"


class MessageFormatError(ValueError):
    """メッセージの構造が不正（id 欠落、未知の種別、行列フィールド欠落など）。"""


@dataclass(frozen=True, slots=True)
class SceneMessage:
    """同期層へ渡す 1 件のメッセージ。"""

    id: NodeId
    type: str | None = None
    parent: NodeId | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def matrix(self) -> Mapping[str, Any] | None:
        return self.attributes.get("matrix")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "SceneMessage":
        if "id" not in data or data["id"] is None:
            raise MessageFormatError(f"メッセージに id がありません: {dict(data)!r}")
        attributes = data.get("attributes") or {}
        if not isinstance(attributes, Mapping):
            raise MessageFormatError(f"attributes は Mapping である必要があります: {attributes!r}")
        return cls(
            id=data["id"],
            type=data.get("type"),
            parent=data.get("parent"),
            attributes=attributes,
        )


def coerce_message(message: SceneMessage | Mapping[str, Any]) -> SceneMessage:
    """`SceneMessage` はそのまま、Mapping は `SceneMessage` に変換して返す。"""
    if isinstance(message, SceneMessage):
        return message
    if isinstance(message, Mapping):
        return SceneMessage.from_mapping(message)
    raise MessageFormatError(f"未対応のメッセージ型: {type(message).__name__}")


def coerce_kind(kind: MessageKind | str) -> MessageKind:
    try:
        return MessageKind(kind)
    except ValueError:
        raise MessageFormatError(f"未知のメッセージ種別: {kind!r}") from None


__all__ = [
    "MessageKind",
    "MessageFormatError",
    "SceneMessage",
    "coerce_message",
    "coerce_kind",
]
