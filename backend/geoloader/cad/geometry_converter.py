"""
几何转换器 - 世界坐标实体转换为 GeoJSON 要素

职责：
1. 按实体类型生成 Point / LineString / Polygon / MultiPolygon
2. 圆/圆弧/椭圆固定 32 段折线化，凸度段按比例折线化
3. 生成要素属性（句柄/类型/图层/样式/类型附加字段/来源图块）
4. 计算要素集合范围

依赖：
- ezdxf.colors: ACI / 真彩色转 RGB

测试要点：
- test_circle_tessellation: 33个点且首尾相同
- test_closed_polyline_polygon: 闭合多段线
- test_hatch_multipolygon: 多环填充
- test_calculate_bounds: 范围计算
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from typing import Any

from ezdxf.colors import aci2rgb, int2rgb

from ..diagnostics import DiagnosticsReporter
from ..models import Bounds, DiagnosticCode, Entity, Feature, Geometry, Layer
from .tessellation import (
    ARC_SEGMENTS,
    TWO_PI,
    arc_points,
    densify_bulged,
    ellipse_points,
    sweep_degrees,
)

logger = logging.getLogger(__name__)

BYLAYER_COLOR = 256
DEFAULT_RAY_LENGTH = 1e6
_CLOSED_EPS = 1e-9

Position = list[float]


class GeometryConversionError(ValueError):
    """实体无法生成有效几何"""


def _xy(p) -> Position:
    return [p.x, p.y]


def _close_ring(points) -> list[Position]:
    """显式闭合环（首尾不同时补首点）"""
    ring = [list(p) for p in points]
    if ring and ring[0] != ring[-1]:
        ring.append(list(ring[0]))
    return ring


def _seal_curve(points) -> list[Position]:
    """整圈折线化结果：末点强制等于首点（点数不变）"""
    ring = [list(p) for p in points]
    ring[-1] = list(ring[0])
    return ring


def _check_finite(geometry: Geometry) -> Geometry:
    for position in geometry.iter_positions():
        if not all(math.isfinite(v) for v in position):
            raise GeometryConversionError(f"坐标非有限: {position}")
    return geometry


def color_to_hex(color: int | None, true_color: int | None = None) -> str | None:
    """真彩色优先，其次 ACI 1..255"""
    if true_color is not None:
        r, g, b = int2rgb(true_color)
    elif color is not None and 1 <= color <= 255:
        r, g, b = aci2rgb(color)
    else:
        return None
    return f"#{r:02x}{g:02x}{b:02x}"


class GeometryConverter:
    """几何转换器"""

    def __init__(
        self,
        reporter: DiagnosticsReporter | None = None,
        layers: dict[str, Layer] | None = None,
        ray_length: float = DEFAULT_RAY_LENGTH,
    ):
        self.reporter = reporter or DiagnosticsReporter(log_records=False)
        self.layers = layers or {}
        self.ray_length = ray_length
        self.converted = 0
        self.failed = 0

    def convert_all(self, entities: Iterable[Entity]) -> list[Feature]:
        features = []
        for entity in entities:
            feature = self.convert(entity)
            if feature is not None:
                features.append(feature)
        logger.info(f"几何转换完成: 成功 {self.converted}，失败 {self.failed}")
        return features

    def convert(self, entity: Entity) -> Feature | None:
        """转换单个实体，失败返回None并记录 CONVERSION_ERROR"""
        try:
            geometry = _check_finite(self.to_geometry(entity))
        except ValueError as e:
            self.failed += 1
            self.reporter.warning(
                DiagnosticCode.CONVERSION_ERROR,
                f"{entity.type} {entity.handle or '?'} 转换失败: {e}",
                {"type": entity.type, "handle": entity.handle},
            )
            return None
        self.converted += 1
        return Feature(geometry=geometry, properties=self.properties(entity))

    # === 几何 ===

    def to_geometry(self, entity: Entity) -> Geometry:
        kind = entity.type
        if kind == "POINT":
            return Geometry(type="Point", coordinates=_xy(entity.position))
        if kind in ("TEXT", "MTEXT", "INSERT", "DIMENSION"):
            return Geometry(type="Point", coordinates=_xy(entity.position))
        if kind == "LINE":
            return Geometry(type="LineString", coordinates=[_xy(entity.start), _xy(entity.end)])
        if kind in ("POLYLINE", "LWPOLYLINE"):
            return self._polyline(entity)
        if kind == "CIRCLE":
            points = arc_points(entity.center.x, entity.center.y, entity.radius, 0.0, 360.0)
            return Geometry(type="Polygon", coordinates=[_seal_curve(points)])
        if kind == "ARC":
            sweep = sweep_degrees(entity.start_angle, entity.end_angle)
            points = arc_points(entity.center.x, entity.center.y, entity.radius, entity.start_angle, sweep)
            return Geometry(type="LineString", coordinates=[list(p) for p in points])
        if kind == "ELLIPSE":
            return self._ellipse(entity)
        if kind == "SPLINE":
            points = [_xy(p) for p in (entity.control_points or entity.fit_points)]
            if entity.closed and len(points) >= 3:
                points = _close_ring(points)
            return Geometry(type="LineString", coordinates=points)
        if kind in ("LEADER", "MLEADER"):
            return Geometry(type="LineString", coordinates=[_xy(p) for p in entity.vertices])
        if kind in ("RAY", "XLINE"):
            return self._ray(entity)
        if kind in ("3DFACE", "SOLID"):
            return Geometry(type="Polygon", coordinates=[_close_ring([_xy(p) for p in entity.vertices])])
        if kind == "HATCH":
            rings = [_close_ring([_xy(p) for p in ring]) for ring in entity.boundaries]
            if len(rings) == 1:
                return Geometry(type="Polygon", coordinates=rings)
            return Geometry(type="MultiPolygon", coordinates=[[ring] for ring in rings])
        raise GeometryConversionError(f"无法转换的实体类型: {kind}")

    def _polyline(self, entity) -> Geometry:
        vertices = [(p.x, p.y) for p in entity.vertices]
        if entity.has_bulges:
            points = densify_bulged(vertices, list(entity.bulges), entity.closed)
        else:
            points = vertices
        coords = [list(p) for p in points]
        if entity.closed and len(coords) >= 3:
            return Geometry(type="Polygon", coordinates=[_close_ring(coords)])
        if len(coords) < 2:
            raise GeometryConversionError("多段线点数不足")
        return Geometry(type="LineString", coordinates=coords)

    def _ellipse(self, entity) -> Geometry:
        span = entity.end_angle - entity.start_angle
        if span <= 0:
            span += TWO_PI
        closed = span >= TWO_PI - _CLOSED_EPS
        points = ellipse_points(
            entity.center.x,
            entity.center.y,
            entity.major_axis.x,
            entity.major_axis.y,
            entity.minor_axis_ratio,
            entity.start_angle,
            TWO_PI if closed else span,
            ARC_SEGMENTS,
        )
        if closed:
            return Geometry(type="Polygon", coordinates=[_seal_curve(points)])
        coords = [list(p) for p in points]
        return Geometry(type="LineString", coordinates=coords)

    def _ray(self, entity) -> Geometry:
        dx, dy = entity.direction.x, entity.direction.y
        length = math.hypot(dx, dy)
        if length == 0:
            raise GeometryConversionError("射线方向在XY平面投影为零")
        ux, uy = dx / length * self.ray_length, dy / length * self.ray_length
        bx, by = entity.base_point.x, entity.base_point.y
        end = [bx + ux, by + uy]
        if entity.type == "XLINE":
            return Geometry(type="LineString", coordinates=[[bx - ux, by - uy], end])
        return Geometry(type="LineString", coordinates=[[bx, by], end])

    # === 属性 ===

    def properties(self, entity: Entity) -> dict[str, Any]:
        layer = self.layers.get(entity.layer)
        color = entity.color
        if (color is None or color == BYLAYER_COLOR) and entity.true_color is None and layer is not None:
            color = layer.color
        line_type = entity.line_type
        if (line_type is None or line_type.upper() == "BYLAYER") and layer is not None:
            line_type = layer.line_type or line_type
        line_weight = entity.line_weight
        if (line_weight is None or line_weight == -1) and layer is not None:
            line_weight = layer.line_weight if layer.line_weight is not None else line_weight

        props: dict[str, Any] = {
            "id": entity.handle,
            "type": entity.type,
            "layer": entity.layer or "0",
            "color": color,
            "color_hex": color_to_hex(color, entity.true_color),
            "line_type": line_type,
            "line_weight": line_weight,
        }
        if entity.thickness:
            props["thickness"] = entity.thickness
        props.update(self._extra_properties(entity))
        if entity.source_block:
            props["block"] = entity.source_block
        return props

    @staticmethod
    def _extra_properties(entity: Entity) -> dict[str, Any]:
        kind = entity.type
        if kind in ("TEXT", "MTEXT"):
            return {
                "text": entity.text,
                "height": entity.height,
                "rotation": entity.rotation,
                "style": entity.style,
            }
        if kind in ("CIRCLE", "ARC"):
            extra = {"radius": entity.radius}
            if kind == "ARC":
                extra.update(start_angle=entity.start_angle, end_angle=entity.end_angle)
            return extra
        if kind in ("POLYLINE", "LWPOLYLINE"):
            return {"closed": entity.closed}
        if kind == "INSERT":
            return {
                "block_name": entity.block_name,
                "rotation": entity.rotation,
                "scale": [entity.x_scale, entity.y_scale, entity.z_scale],
                "attributes": dict(entity.attributes),
            }
        if kind == "HATCH":
            return {"pattern_name": entity.pattern_name, "solid_fill": entity.solid_fill}
        if kind == "DIMENSION":
            return {
                "text": entity.text,
                "measurement": entity.measurement,
                "dimension_type": entity.dimension_type,
            }
        if kind == "SPLINE":
            return {"degree": entity.degree, "closed": entity.closed}
        if kind == "POINT":
            return {"angle": entity.angle} if entity.angle else {}
        return {}


def calculate_bounds(features: Iterable[Feature]) -> Bounds | None:
    """计算要素集合的外包范围，空集返回None"""
    return Bounds.from_points(
        (position[0], position[1])
        for feature in features
        for position in feature.geometry.iter_positions()
    )
