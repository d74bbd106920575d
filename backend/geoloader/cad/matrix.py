"""
矩阵变换引擎 - 图块参照的仿射变换

基于 ezdxf.math.Matrix44（行向量约定：p' = p · M，chain(A, B) 先应用 A）。
本模块对外采用"右到左"复合语义：compose(T, R, S) 先缩放、再旋转、后平移，
与列向量写法 T·R·S 一致；列向量约定下的矩阵行即 Matrix44.columns()。

测试要点：
- test_compose_order: 复合顺序
- test_transform_point_perspective: 齐次除法与非有限值
- test_is_mirrored: 镜像判断
"""

from __future__ import annotations

import math

from ezdxf.math import OCS, Matrix44

from ..models import Vector3


def identity() -> Matrix44:
    return Matrix44()


def translate(x: float, y: float, z: float = 0.0) -> Matrix44:
    return Matrix44.translate(x, y, z)


def rotate_z(degrees: float) -> Matrix44:
    """绕Z轴逆时针旋转（角度单位：度）"""
    return Matrix44.z_rotate(math.radians(degrees))


def scale(x: float, y: float | None = None, z: float | None = None) -> Matrix44:
    return Matrix44.scale(x, x if y is None else y, x if z is None else z)


def compose(*matrices: Matrix44) -> Matrix44:
    """右到左复合：最右侧矩阵最先作用"""
    if not matrices:
        return Matrix44()
    return Matrix44.chain(*reversed(matrices))


def ocs_to_wcs(extrusion: Vector3) -> Matrix44:
    """对象坐标系（由拉伸方向定义）到世界坐标系的矩阵"""
    ocs = OCS(extrusion.to_vec3())
    if not ocs.transform:
        return Matrix44()
    return Matrix44.ucs(ocs.ux, ocs.uy, ocs.uz)


def transform_point(m: Matrix44, p: Vector3) -> Vector3 | None:
    """齐次变换点（含透视除法），结果非有限时返回None"""
    x, y, z = p.x, p.y, p.z
    tx = x * m[0, 0] + y * m[1, 0] + z * m[2, 0] + m[3, 0]
    ty = x * m[0, 1] + y * m[1, 1] + z * m[2, 1] + m[3, 1]
    tz = x * m[0, 2] + y * m[1, 2] + z * m[2, 2] + m[3, 2]
    w = x * m[0, 3] + y * m[1, 3] + z * m[2, 3] + m[3, 3]
    if w != 1.0:
        if w == 0.0:
            return None
        tx, ty, tz = tx / w, ty / w, tz / w
    if not (math.isfinite(tx) and math.isfinite(ty) and math.isfinite(tz)):
        return None
    return Vector3(x=tx, y=ty, z=tz)


def transform_direction(m: Matrix44, v: Vector3) -> Vector3 | None:
    """变换方向向量（忽略平移）"""
    d = m.transform_direction(v.to_vec3())
    if not (math.isfinite(d.x) and math.isfinite(d.y) and math.isfinite(d.z)):
        return None
    return Vector3.from_vec3(d)


def get_scale_factor(m: Matrix44) -> float:
    """
    平均缩放因子：变换后X、Y基向量长度的均值

    非均匀缩放时为近似值（圆仍按圆处理）。
    """
    return (m.ux.magnitude + m.uy.magnitude) / 2.0


def rotation_angle(m: Matrix44) -> float:
    """变换后X基向量的方向角（度）"""
    ux = m.ux
    return math.degrees(math.atan2(ux.y, ux.x))


def transform_angle(angle: float, m: Matrix44) -> float:
    """角度（度）加上变换的旋转分量"""
    return angle + rotation_angle(m)


def is_mirrored(m: Matrix44) -> bool:
    """XY 平面行列式为负即镜像"""
    ux, uy = m.ux, m.uy
    return ux.x * uy.y - ux.y * uy.x < 0


def block_transform(
    position: Vector3,
    rotation: float = 0.0,
    scales: tuple[float, float, float] = (1.0, 1.0, 1.0),
    offset: tuple[float, float] = (0.0, 0.0),
    base_point: Vector3 | None = None,
    extrusion: Vector3 | None = None,
) -> Matrix44:
    """
    图块参照的局部矩阵

    OCS(extrusion) · T(position) · Rz(rotation) · T(offset) · S(scales) · T(-base_point)
    """
    parts = []
    if extrusion is not None:
        parts.append(ocs_to_wcs(extrusion))
    parts.extend([
        translate(position.x, position.y, position.z),
        rotate_z(rotation),
        translate(offset[0], offset[1], 0.0),
        scale(*scales),
    ])
    if base_point is not None:
        parts.append(translate(-base_point.x, -base_point.y, -base_point.z))
    return compose(*parts)


def column_rows(m: Matrix44) -> list[tuple[float, ...]]:
    """列向量约定下的矩阵行"""
    return [tuple(col) for col in m.columns()]
