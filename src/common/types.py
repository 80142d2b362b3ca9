"""
どこで: `common` の型定義。
何を: Vec2/Matrix6/NodeId などの軽量エイリアス（組込みジェネリックで記述）。
なぜ: 依存の少ない場所に配置して循環と分散定義を避けるため。
"""

from typing import Hashable

Vec2 = tuple[float, float]
# (a, b, c, d, tx, ty): 線形部 [[a, c], [b, d]] + 平行移動 (tx, ty)
Matrix6 = list[float]
NodeId = Hashable


__all__ = ["Vec2", "Matrix6", "NodeId"]
