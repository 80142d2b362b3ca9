"""
どこで: `common.settings`
何を: 同期層/ロギングの環境変数を型付きで一元管理し、起動時に読み込む。
なぜ: `os.getenv` の散在を避け、既定値/型の一貫性とテスト容易性を保つため。
"""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_str

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class _Settings:
    # SceneGraphSync
    SYNC_MULTI_PENDING: bool = False
    SYNC_DEBUG: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"


_settings = _Settings()


def reload_from_env() -> None:
    """環境変数から設定を再読込。

    - `SCN_SYNC_MULTI_PENDING`: 未生成の親 ID ごとに保留アタッチを複数保持する。
    - `SCN_SYNC_DEBUG`: メッセージ処理ごとに DEBUG ログを出す。
    - `SCN_LOG_LEVEL`: `setup_default_logging()` の既定レベル（不正値は INFO）。
    """
    _settings.SYNC_MULTI_PENDING = env_bool("SCN_SYNC_MULTI_PENDING", False)
    _settings.SYNC_DEBUG = env_bool("SCN_SYNC_DEBUG", False)
    level = env_str("SCN_LOG_LEVEL", "INFO", choices=_LOG_LEVELS) or "INFO"
    _settings.LOG_LEVEL = level.upper()


def get() -> _Settings:
    """現在の設定スナップショットを返す。"""
    return _settings


# 初期ロード
reload_from_env()


__all__ = ["get", "reload_from_env", "_Settings"]
