"""
どこで: `api` 入口（高レベル公開 API）。
何を: 表示ノード・属性スキーマ・変換関数・シーングラフ同期などを再輸出。
なぜ: 利用者が単一名前空間からノード操作→メッセージ化→同期まで完結できるようにするため。

Usage:
    from api import DisplayNode, SceneGraphSync, MemoryBackend

    node = DisplayNode({"x": 10, "rotation": "45deg"})
    sync = SceneGraphSync(MemoryBackend())
    sync.handle_create({"id": 1, "type": "shape", "parent": None})
    sync.handle_update(node.to_update_message(1))
"""

from common.logging import setup_default_logging
from engine.core.attributes import AttributeDefinition, AttributeSchema, AttributeStore
from engine.core.display_node import DISPLAY_SCHEMA, DisplayNode
from engine.core.transform import compose, decompose, parse_rotation
from engine.render.backend import MemoryBackend, SceneBackend
from engine.runtime.messages import MessageFormatError, MessageKind, SceneMessage
from engine.runtime.scene_sync import SceneGraphSync, UnknownNodeError

__all__ = [
    # ノード
    "DisplayNode",
    "DISPLAY_SCHEMA",
    "AttributeDefinition",
    "AttributeSchema",
    "AttributeStore",
    # 変換
    "compose",
    "decompose",
    "parse_rotation",
    # 同期
    "SceneGraphSync",
    "SceneMessage",
    "MessageKind",
    "SceneBackend",
    "MemoryBackend",
    # エラー
    "UnknownNodeError",
    "MessageFormatError",
    # ロギング
    "setup_default_logging",
]

__version__ = "0.1.0"
