"""
どこで: `common` パッケージ。
何を: 環境変数ヘルパ・設定・ロギング・型エイリアス・値正規化などの軽量ユーティリティ。
なぜ: engine 各層から再利用する共通基盤を分離し、依存の向きを単純化するため。
"""

from .param_utils import clamp01, normalize_angle

__all__ = [
    "clamp01",
    "normalize_angle",
]
