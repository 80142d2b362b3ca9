"""共通フィクスチャ。

- 既定スキーマの DisplayNode
- インメモリバックエンドと同期層
- 設定（環境変数）のリセット
"""

from __future__ import annotations

from typing import Iterator

import pytest

from common import settings
from engine.core.display_node import DisplayNode
from engine.render.backend import MemoryBackend
from engine.runtime.scene_sync import SceneGraphSync


@pytest.fixture()
def node() -> DisplayNode:
    return DisplayNode()


@pytest.fixture()
def backend() -> MemoryBackend:
    return MemoryBackend()


@pytest.fixture()
def sync(backend: MemoryBackend) -> SceneGraphSync:
    return SceneGraphSync(backend)


@pytest.fixture()
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in ("SCN_SYNC_MULTI_PENDING", "SCN_SYNC_DEBUG", "SCN_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    settings.reload_from_env()
    yield
    monkeypatch.undo()
    settings.reload_from_env()
