"""
どこで: `engine.core` の 2D アフィン変換エンジン（純関数）。
何を: 6 つのプリミティブ（skew, scaleX, scaleY, rotation, x, y）とピボット
      （transformOriginX/Y）から行列 (a, b, c, d, tx, ty) を合成し、逆に任意の行列を
      ピボット基準でプリミティブへ分解する。回転値（数値/単位付き文字列）の解釈も担う。
なぜ: DisplayNode の属性フックから数式を分離し、合成と分解が厳密な逆写像であることを
      単体で検証できるようにするため。

行列の表現:
- 線形部 [[a, c], [b, d]] + 平行移動 (tx, ty)。
- 合成順は固定で shear → scale → rotate → translate。ピボットはシアーの後・スケールの前に外す:
  ``M = T(x+ox, y+oy) · R(rotation) · S(scaleX, scaleY) · T(-ox, -oy) · Shear(skew)``
- `Shear(skew)` はセル `c` に直接寄与する。回転は数学的な反時計回り。
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

from common.param_utils import normalize_angle
from common.types import Matrix6

MATRIX_FIELDS: tuple[str, ...] = ("a", "b", "c", "d", "tx", "ty")

_ANGLE_RE = re.compile(
    r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)\s*(deg|grad|rad|turn)?\s*$"
)


@dataclass(frozen=True, slots=True)
class TransformPrimitives:
    """合成/分解の入出力となるプリミティブ一式。"""

    skew: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    rotation: float = 0.0
    x: float = 0.0
    y: float = 0.0


def parse_rotation(value: float | int | str) -> float:
    """回転値をラジアンへ変換し [0, 2π) に正規化する。

    Parameters
    ----------
    value : float | int | str
        数値（ラジアン）または単位付き文字列（``deg``/``turn``/``rad``/``grad``）。
        単位なしの数値文字列はラジアンとして扱う。

    Returns
    -------
    float
        [0, 2π) に正規化された角度。

    Raises
    ------
    ValueError
        文字列が数値 + 既知の単位として解釈できない場合。
    """
    if isinstance(value, str):
        m = _ANGLE_RE.match(value)
        if m is None:
            raise ValueError(f"回転値を解釈できません: {value!r}")
        number = float(m.group(1))
        unit = m.group(2) or "rad"
        # 45deg == π/4, -200grad == π が厳密に成り立つ演算順
        if unit == "deg":
            rad = number / 180.0 * math.pi
        elif unit == "grad":
            rad = number / 200.0 * math.pi
        elif unit == "turn":
            rad = number * math.tau
        else:
            rad = number
        return normalize_angle(rad)
    return normalize_angle(float(value))


def _translation(tx: float, ty: float) -> np.ndarray:
    return np.array([[1.0, 0.0, tx], [0.0, 1.0, ty], [0.0, 0.0, 1.0]], dtype=np.float64)


def compose(
    skew: float,
    scale_x: float,
    scale_y: float,
    rotation: float,
    x: float,
    y: float,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> Matrix6:
    """プリミティブとピボットから 6 要素行列を合成する（純関数）。

    返り値は新しい `list[float]`（a, b, c, d, tx, ty）。

    Notes
    -----
    ピボットはシアーの外側で外す（``… · S · T(-o) · Shear``）。
    ``… · S · Shear · T(-o)`` と書く流儀とは skew と origin が共に非ゼロのときだけ
    tx/ty が食い違う。例: skew=0.5, scale=(4, -0.5), rotation=2, (x, y)=(-200, 123),
    origin=(-12.3, 98) では本関数が tx≈-277.33 を返し、もう一方の順序では tx≈-195.77 になる。
    `decompose` はこの関数の順序の厳密な逆写像になっている。
    """
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    rotate = np.array([[cos_r, -sin_r, 0.0], [sin_r, cos_r, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)
    scale = np.diag([float(scale_x), float(scale_y), 1.0])
    shear = np.array([[1.0, float(skew), 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)

    m = (
        _translation(x + origin_x, y + origin_y)
        @ rotate
        @ scale
        @ _translation(-origin_x, -origin_y)
        @ shear
    )
    return [
        float(m[0, 0]),
        float(m[1, 0]),
        float(m[0, 1]),
        float(m[1, 1]),
        float(m[0, 2]),
        float(m[1, 2]),
    ]


def compose_primitives(p: TransformPrimitives, origin: tuple[float, float] = (0.0, 0.0)) -> Matrix6:
    """`TransformPrimitives` 版の `compose`。"""
    return compose(p.skew, p.scale_x, p.scale_y, p.rotation, p.x, p.y, origin[0], origin[1])


def decompose(
    matrix: Sequence[float],
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> TransformPrimitives:
    """任意の 6 要素行列をピボット基準でプリミティブへ分解する（`compose` の逆写像）。

    線形部は QR 風に抽出する:
    - scaleX: 第 1 列の長さ
    - rotation: 第 1 列の角度（atan2）を [0, 2π) に正規化
    - skew: 第 2 列の第 1 列方向成分を scaleX² で正規化
    - scaleY: 行列式 / scaleX（第 2 列の直交成分、符号は行列式に従う）

    平行移動はピボットの寄与 ``origin - R·S·origin`` を取り除いて (x, y) を得る。
    第 1 列がゼロの退化行列では scaleX=0, rotation=0, skew=0, scaleY=d とする。
    """
    a, b, c, d, tx, ty = _as_matrix(matrix)

    scale_x = math.hypot(a, b)
    if scale_x == 0.0:
        rotation = 0.0
        skew = 0.0
        scale_y = d
    else:
        rotation = normalize_angle(math.atan2(b, a))
        skew = (a * c + b * d) / (scale_x * scale_x)
        scale_y = (a * d - b * c) / scale_x

    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    sox, soy = scale_x * origin_x, scale_y * origin_y
    x = tx - origin_x + (cos_r * sox - sin_r * soy)
    y = ty - origin_y + (sin_r * sox + cos_r * soy)
    return TransformPrimitives(
        skew=skew,
        scale_x=scale_x,
        scale_y=scale_y,
        rotation=rotation,
        x=x,
        y=y,
    )


def _as_matrix(matrix: Sequence[float]) -> tuple[float, float, float, float, float, float]:
    values = [float(v) for v in matrix]
    if len(values) != 6:
        raise ValueError(f"行列は 6 要素 (a, b, c, d, tx, ty) である必要があります: len={len(values)}")
    a, b, c, d, tx, ty = values
    return a, b, c, d, tx, ty


def matrix_to_fields(matrix: Sequence[float]) -> dict[str, float]:
    """6 要素行列をメッセージ用の ``{a, b, c, d, tx, ty}`` へ変換する。"""
    return dict(zip(MATRIX_FIELDS, _as_matrix(matrix)))


def fields_to_matrix(fields: Mapping[str, float]) -> Matrix6:
    """``{a, b, c, d, tx, ty}`` を 6 要素行列へ変換する（欠落キーは KeyError）。"""
    return [float(fields[k]) for k in MATRIX_FIELDS]


__all__ = [
    "MATRIX_FIELDS",
    "TransformPrimitives",
    "parse_rotation",
    "compose",
    "compose_primitives",
    "decompose",
    "matrix_to_fields",
    "fields_to_matrix",
]
