"""
どこで: `common.env`
何を: 環境変数の軽量パースヘルパ（bool/str）を提供。
なぜ: 設定読み込みで `os.getenv` + 不正値ガードを一箇所に寄せるため。
"""

from __future__ import annotations

import os
from typing import Optional

_TRUTHY = {"true", "t", "yes", "y", "on"}
_FALSY = {"false", "f", "no", "n", "off"}


def env_bool(name: str, default: bool = False) -> bool:
    """真偽環境変数を取得（0/1, true/false, on/off を許容）。

    Parameters
    ----------
    name : str
        環境変数名。
    default : bool
        未設定または解釈できない値のときに返す既定値。
    """
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    s = raw.strip().lower()
    try:
        # 数値優先
        return int(s) != 0
    except ValueError:
        pass
    if s in _TRUTHY:
        return True
    if s in _FALSY:
        return False
    return bool(default)


def env_str(name: str, default: Optional[str] = None, *, choices: set[str] | None = None) -> Optional[str]:
    """文字列環境変数を取得（前後空白は除去、空文字は未設定扱い）。

    `choices` を渡した場合、大文字化した値が含まれなければ既定値を返す。
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    s = raw.strip()
    if not s:
        return default
    if choices is not None and s.upper() not in choices:
        return default
    return s


__all__ = ["env_bool", "env_str"]
