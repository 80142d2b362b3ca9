"""
どこで: `common` の値正規化ユーティリティ。
何を: 範囲クランプと、角度の [0, 2π) 正規化。
なぜ: 属性セッタ（opacity/rotation）とアフィン分解が同じ規則で値を丸めるようにするため。

NaN は範囲に収められないため `ValueError` とする（±inf は clamp01 では端点へ丸める）。
"""

from __future__ import annotations

import math


def clamp01(x: float) -> float:
    if x != x:
        raise ValueError("clamp01: NaN は [0, 1] へ丸められません")
    return 0 if x <= 0 else 1 if x >= 1 else x


def normalize_angle(rad: float) -> float:
    """角度を半開区間 [0, 2π) へ畳み込む（負値も正しく扱う）。

    `math.fmod` は被除数の符号を保つため、負の剰余には 2π を足して戻す。
    丸めで 2π ちょうどになる極小の負値は 0 とする。NaN/±inf は `ValueError`。
    """
    value = float(rad)
    if not math.isfinite(value):
        raise ValueError(f"角度は有限値である必要があります: {rad!r}")
    r = math.fmod(value, math.tau)
    if r < 0:
        r += math.tau
    if r >= math.tau:
        return 0.0
    return r + 0.0  # -0.0 -> 0.0


__all__ = ["clamp01", "normalize_angle"]
