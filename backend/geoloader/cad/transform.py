"""
实体放置变换 - 把实体按矩阵映射到世界坐标

职责：
1. 对象坐标系实体（CIRCLE/ARC/LWPOLYLINE/TEXT/HATCH/SOLID…）先由 OCS 映射到 WCS
2. 点/方向/半径/角度按矩阵变换
3. 镜像变换时交换并反射圆弧/椭圆角度，取反多段线凸度

约束：
- 实体不可变，变换返回副本（拉伸方向归一为 +Z）
"""

from __future__ import annotations

import math

from ezdxf.math import Matrix44

from ..models import Z_AXIS, Entity, Vector3
from . import matrix as mx

# 坐标在对象坐标系中存储的实体类型
OCS_ENTITY_TYPES = frozenset(
    {"CIRCLE", "ARC", "LWPOLYLINE", "POLYLINE", "TEXT", "INSERT", "HATCH", "SOLID"}
)


class EntityTransformError(ValueError):
    """变换后出现非有限坐标"""


def needs_ocs_mapping(entity: Entity) -> bool:
    return entity.type in OCS_ENTITY_TYPES and not entity.has_default_extrusion


def placement_matrix(entity: Entity, m: Matrix44 | None) -> Matrix44 | None:
    """实体的完整放置矩阵（含 OCS），无需变换时返回None"""
    if needs_ocs_mapping(entity):
        ocs = mx.ocs_to_wcs(entity.extrusion)
        return ocs if m is None else mx.compose(m, ocs)
    return m


def _point(m: Matrix44, p: Vector3) -> Vector3:
    result = mx.transform_point(m, p)
    if result is None:
        raise EntityTransformError(f"点 ({p.x}, {p.y}, {p.z}) 变换后非有限")
    return result


def _points(m: Matrix44, points) -> tuple[Vector3, ...]:
    return tuple(_point(m, p) for p in points)


def _direction(m: Matrix44, v: Vector3) -> Vector3:
    result = mx.transform_direction(m, v)
    if result is None:
        raise EntityTransformError("方向向量变换后非有限")
    return result


def transform_entity(entity: Entity, m: Matrix44) -> Entity:
    """
    按矩阵变换实体，返回副本

    Raises:
        EntityTransformError: 任一坐标变换后非有限
    """
    mirrored = mx.is_mirrored(m)
    kind = entity.type
    update: dict = {"extrusion": Z_AXIS}

    if kind == "POINT":
        update["position"] = _point(m, entity.position)
        update["angle"] = mx.transform_angle(entity.angle, m)
    elif kind == "LINE":
        update["start"] = _point(m, entity.start)
        update["end"] = _point(m, entity.end)
    elif kind in ("POLYLINE", "LWPOLYLINE"):
        update["vertices"] = _points(m, entity.vertices)
        update["elevation"] = 0.0
        if mirrored:
            update["bulges"] = tuple(-b for b in entity.bulges)
    elif kind == "CIRCLE":
        update["center"] = _point(m, entity.center)
        update["radius"] = entity.radius * mx.get_scale_factor(m)
    elif kind == "ARC":
        update.update(_transform_arc(entity, m, mirrored))
    elif kind == "ELLIPSE":
        update.update(_transform_ellipse(entity, m, mirrored))
    elif kind == "SPLINE":
        update["control_points"] = _points(m, entity.control_points)
        update["fit_points"] = _points(m, entity.fit_points)
    elif kind == "INSERT":
        update["position"] = _point(m, entity.position)
        update["rotation"] = mx.transform_angle(entity.rotation, m)
    elif kind in ("TEXT", "MTEXT"):
        factor = mx.get_scale_factor(m)
        update["position"] = _point(m, entity.position)
        update["rotation"] = mx.transform_angle(entity.rotation, m)
        if entity.height is not None:
            update["height"] = entity.height * factor
        if entity.width is not None:
            update["width"] = entity.width * factor
    elif kind == "HATCH":
        update["boundaries"] = tuple(_points(m, ring) for ring in entity.boundaries)
    elif kind in ("3DFACE", "SOLID"):
        update["vertices"] = _points(m, entity.vertices)
    elif kind == "DIMENSION":
        update["position"] = _point(m, entity.position)
        if entity.text_midpoint is not None:
            update["text_midpoint"] = _point(m, entity.text_midpoint)
    elif kind in ("LEADER", "MLEADER"):
        update["vertices"] = _points(m, entity.vertices)
    elif kind in ("RAY", "XLINE"):
        direction = _direction(m, entity.direction)
        if direction.x == 0 and direction.y == 0 and direction.z == 0:
            raise EntityTransformError("方向向量变换后为零")
        update["base_point"] = _point(m, entity.base_point)
        update["direction"] = direction

    return entity.model_copy(update=update)


def _transform_arc(entity, m: Matrix44, mirrored: bool) -> dict:
    if mirrored:
        theta = mx.rotation_angle(m)
        start, end = theta - entity.end_angle, theta - entity.start_angle
    else:
        start = mx.transform_angle(entity.start_angle, m)
        end = mx.transform_angle(entity.end_angle, m)
    return {
        "center": _point(m, entity.center),
        "radius": entity.radius * mx.get_scale_factor(m),
        "start_angle": start,
        "end_angle": end,
    }


def _transform_ellipse(entity, m: Matrix44, mirrored: bool) -> dict:
    major = _direction(m, entity.major_axis)
    minor_src = Vector3(
        x=-entity.major_axis.y * entity.minor_axis_ratio,
        y=entity.major_axis.x * entity.minor_axis_ratio,
        z=0.0,
    )
    minor = _direction(m, minor_src)

    major_len = math.hypot(major.x, major.y, major.z)
    minor_len = math.hypot(minor.x, minor.y, minor.z)
    if major_len == 0 or minor_len == 0:
        raise EntityTransformError("椭圆轴变换后退化")

    start, end = entity.start_angle, entity.end_angle
    if mirrored:
        start, end = -end, -start

    ratio = minor_len / major_len
    if ratio > 1.0:
        # 短轴变为长轴：主轴取逆时针垂向，参数整体后移 π/2
        scale = minor_len / major_len
        major = Vector3(x=-major.y * scale, y=major.x * scale, z=major.z * scale)
        ratio = 1.0 / ratio
        start -= math.pi / 2
        end -= math.pi / 2

    return {
        "center": _point(m, entity.center),
        "major_axis": major,
        "minor_axis_ratio": ratio,
        "start_angle": start,
        "end_angle": end,
    }
