"""
どこで: `engine.runtime` のシーングラフ同期層（描画側）。
何を: create/update/remove メッセージを順に消費し、id → RenderNode の対応表と
      保留アタッチ表を保ちながら、外部バックエンドのノード木を構築/更新/破棄する。
なぜ: 子の create が親の create より先に届いても、両方が最終的に届けば
      子がちょうど 1 回だけ親へ付くことを保証するため。

状態遷移（ノード id 単位）::

    unseen → created → (attached | pending-attachment) → removed

- `pending-attachment → attached` だけが非線形で、別 id（親）の create が引き金になる。
- 保留アタッチは「後で同期ループ自身が同期的に呼ぶ」データ継続（`PendingAttachment`）。
  キャンセル/タイムアウトは持たない。
- 既定では未生成の親 id ごとに保留は 1 件のみで、後から登録された子が上書きする。
  `multi_pending=True`（または `SCN_SYNC_MULTI_PENDING=1`）で親ごとに複数保持する。

単一スレッド前提。マルチスレッドのホストはメッセージ配送を直列化すること。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from common.types import NodeId
from engine.core.transform import MATRIX_FIELDS
from engine.render.backend import PrimitiveHandle, SceneBackend

from .messages import MessageFormatError, MessageKind, SceneMessage, coerce_kind, coerce_message


class UnknownNodeError(KeyError):
    """対応表に存在しない id を参照した（update/remove/アタッチ）。

    ホストへそのまま伝搬させる。内部での再試行は行わない。
    """

    def __init__(self, node_id: NodeId, action: str | None = None) -> None:
        message = f"unknown node id: {node_id!r}"
        if action:
            message = f"{message} ({action})"
        super().__init__(message)
        self.node_id = node_id
        self.action = action

    def __str__(self) -> str:
        # KeyError は repr 形式で表示されるため、メッセージをそのまま返す
        return str(self.args[0])


@dataclass(slots=True)
class RenderNode:
    """バックエンド側のノード表現（handle の子リストはバックエンド所有）。"""

    id: NodeId
    type: str | None
    parent: NodeId | None
    handle: PrimitiveHandle


@dataclass(frozen=True, slots=True)
class PendingAttachment:
    """親 `parent_id` の生成時に、子 `child_id` を付けるための継続。"""

    child_id: NodeId
    parent_id: NodeId


class SceneGraphSync:
    """メッセージ駆動のシーングラフ同期。

    Parameters
    ----------
    backend : SceneBackend
        プリミティブ生成と変換値書き込みを担う外部バックエンド。
    root : PrimitiveHandle | None
        最上位コンテナ。`dispatch()` の remove で親が不明なときの取り外し元。
    multi_pending : bool | None
        未生成の親 id ごとに保留アタッチを複数保持するか。None なら設定値に従う。
    """

    def __init__(
        self,
        backend: SceneBackend,
        *,
        root: PrimitiveHandle | None = None,
        multi_pending: bool | None = None,
    ) -> None:
        self._backend = backend
        self._root = root if root is not None else getattr(backend, "root", None)
        self._nodes: dict[NodeId, RenderNode] = {}
        self._pending: dict[NodeId, list[PendingAttachment]] = {}
        self._logger = logging.getLogger(__name__)

        try:
            from common.settings import get as _get_settings

            settings = _get_settings()
            default_multi = bool(settings.SYNC_MULTI_PENDING)
            self._debug = bool(settings.SYNC_DEBUG)
        except Exception:  # pragma: no cover - 設定読込失敗時の既定値
            default_multi = False
            self._debug = False
        self._multi_pending = default_multi if multi_pending is None else bool(multi_pending)

    # ------------------------------------------------------------------ #
    # State                                                              #
    # ------------------------------------------------------------------ #
    @property
    def nodes_by_id(self) -> dict[NodeId, RenderNode]:
        """id → RenderNode（ホストが寿命を管理するため実体を返す）。"""
        return self._nodes

    @property
    def pending_by_parent_id(self) -> dict[NodeId, tuple[PendingAttachment, ...]]:
        """未生成の親 id → 保留アタッチ（スナップショット）。"""
        return {k: tuple(v) for k, v in self._pending.items()}

    @property
    def multi_pending(self) -> bool:
        return self._multi_pending

    def get_node(self, node_id: NodeId) -> RenderNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNodeError(node_id, "lookup")
        return node

    # ------------------------------------------------------------------ #
    # Message handlers                                                   #
    # ------------------------------------------------------------------ #
    def handle_create(self, message: SceneMessage | Mapping[str, Any]) -> RenderNode:
        """RenderNode を生成して登録し、親へのアタッチ（即時/保留）と保留解決を行う。"""
        msg = coerce_message(message)
        if msg.id in self._nodes:
            self._logger.warning("create for existing node id %r; replacing", msg.id)
        node = RenderNode(
            id=msg.id,
            type=msg.type,
            parent=msg.parent,
            handle=self._backend.create_primitive(msg.type),
        )
        self._nodes[msg.id] = node
        if self._debug:
            self._logger.debug("created node %r (type=%r, parent=%r)", msg.id, msg.type, msg.parent)
        self._attach(msg.id, msg.parent)
        self.resolve_pending(msg.id)
        return node

    def resolve_pending(self, created_id: NodeId) -> None:
        """`created_id` を待っていた保留アタッチを 1 回だけ実行して取り除く。

        途中のタスクが失敗しても残りのタスクは実行し、最初の例外を最後に送出する。
        """
        tasks = self._pending.pop(created_id, None)
        if not tasks:
            return
        first_error: UnknownNodeError | None = None
        for task in tasks:
            if self._debug:
                self._logger.debug("resolving pending attachment %r -> %r", task.child_id, task.parent_id)
            try:
                self._attach(task.child_id, task.parent_id)
            except UnknownNodeError as exc:
                self._logger.warning("pending attachment %r -> %r failed: %s", task.child_id, task.parent_id, exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None:
            raise first_error

    def handle_update(self, message: SceneMessage | Mapping[str, Any]) -> None:
        """`attributes.matrix` の 6 フィールドをそのままバックエンドへ書き込む。

        matrix が無ければ何もしない。未知の id は `UnknownNodeError`。
        """
        msg = coerce_message(message)
        matrix = msg.matrix
        if matrix is None:
            return
        node = self._nodes.get(msg.id)
        if node is None:
            raise UnknownNodeError(msg.id, "update")
        try:
            fields = [matrix[k] for k in MATRIX_FIELDS]
        except (KeyError, TypeError) as exc:
            raise MessageFormatError(f"matrix には {MATRIX_FIELDS} が必要です: {matrix!r}") from exc
        self._backend.set_transform(node.handle, *fields)
        if self._debug:
            self._logger.debug("updated matrix of node %r", msg.id)

    def handle_remove(
        self, message: SceneMessage | Mapping[str, Any], container: PrimitiveHandle
    ) -> RenderNode:
        """ノードの handle を `container` から外す。

        対応表からの削除は呼び出し側の責務（`forget()`）。
        """
        msg = coerce_message(message)
        node = self._nodes.get(msg.id)
        if node is None:
            raise UnknownNodeError(msg.id, "remove")
        container.remove_child(node.handle)
        if self._debug:
            self._logger.debug("detached node %r", msg.id)
        return node

    def forget(self, node_id: NodeId) -> RenderNode | None:
        """対応表から id を除き、その id を子とする保留アタッチも破棄する。"""
        node = self._nodes.pop(node_id, None)
        for parent_id in list(self._pending):
            kept = [t for t in self._pending[parent_id] if t.child_id != node_id]
            if kept:
                self._pending[parent_id] = kept
            else:
                del self._pending[parent_id]
        return node

    def dispatch(
        self,
        kind: MessageKind | str,
        message: SceneMessage | Mapping[str, Any],
        container: PrimitiveHandle | None = None,
    ) -> None:
        """種別ごとにハンドラへ振り分ける（ホストの配送ループ用）。

        - update: matrix の反映に加え、matrix 以外の属性をバックエンドの
          `apply_attributes(handle, attributes)`（任意実装）へ渡す。
        - remove: 取り外し元は `container` → 親ノードの handle → `root` の順に決め、
          取り外し後に `forget()` する。
        """
        k = coerce_kind(kind)
        msg = coerce_message(message)
        if k is MessageKind.CREATE:
            self.handle_create(msg)
        elif k is MessageKind.UPDATE:
            self.handle_update(msg)
            self._forward_attributes(msg)
        else:
            target = container if container is not None else self._removal_container(msg.id)
            self.handle_remove(msg, target)
            self.forget(msg.id)

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #
    def _attach(self, child_id: NodeId, parent_id: NodeId | None) -> None:
        if parent_id is None:
            # ルート: バックエンドの最上位コンテナが所有する
            return
        child = self._nodes.get(child_id)
        if child is None:
            raise UnknownNodeError(child_id, "attach")
        parent = self._nodes.get(parent_id)
        if parent is not None:
            parent.handle.add_child(child.handle)
            return
        task = PendingAttachment(child_id=child_id, parent_id=parent_id)
        if self._multi_pending:
            self._pending.setdefault(parent_id, []).append(task)
            return
        previous = self._pending.get(parent_id)
        if previous:
            self._logger.debug(
                "pending attachment for parent %r replaced: %r -> %r",
                parent_id,
                previous[0].child_id,
                child_id,
            )
        self._pending[parent_id] = [task]

    def _forward_attributes(self, msg: SceneMessage) -> None:
        apply = getattr(self._backend, "apply_attributes", None)
        if apply is None:
            return
        others = {k: v for k, v in msg.attributes.items() if k != "matrix"}
        if not others:
            return
        node = self._nodes.get(msg.id)
        if node is None:
            raise UnknownNodeError(msg.id, "update")
        apply(node.handle, others)

    def _removal_container(self, node_id: NodeId) -> PrimitiveHandle:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNodeError(node_id, "remove")
        if node.parent is not None and node.parent in self._nodes:
            return self._nodes[node.parent].handle
        if self._root is None:
            raise ValueError("remove の取り外し元コンテナが決まりません（root 未指定）")
        return self._root


__all__ = [
    "UnknownNodeError",
    "RenderNode",
    "PendingAttachment",
    "SceneGraphSync",
]
