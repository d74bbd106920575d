"""
实体解码器 - 把单个实体的组码游程转换为强类型实体

职责：
1. 读取公共属性（图层/句柄/颜色/线型/线宽/厚度/可见性/拉伸方向）
2. 按实体类型校验并构造实体模型
3. 校验失败时丢弃实体并记录诊断，不抛异常

依赖：
- ezdxf.tools.text: MTEXT 格式码剥离、TEXT 特殊码转换

测试要点：
- test_decode_line: 起止点
- test_decode_lwpolyline_bulge: 顶点与凸度对应
- test_decode_circle_invalid_radius: 半径校验
- test_decode_unsupported: 未支持类型
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable

from ezdxf.lldxf.types import DXFTag
from ezdxf.tools.text import plain_mtext, plain_text

from ..diagnostics import DiagnosticsReporter
from ..models import (
    Z_AXIS,
    ArcEntity,
    CircleEntity,
    DiagnosticCode,
    DimensionEntity,
    EllipseEntity,
    Entity,
    FaceEntity,
    HatchEntity,
    InsertEntity,
    LeaderEntity,
    LineEntity,
    PointEntity,
    PolylineEntity,
    RayEntity,
    SplineEntity,
    TextEntity,
    Vector3,
)
from .decoding import TagReader, decode_hatch_boundaries, make_point, parse_float

logger = logging.getLogger(__name__)

# 跟随在主实体之后的子记录
_CHILD_TYPES = frozenset({"VERTEX", "ATTRIB"})
_OWNER_TYPES = frozenset({"POLYLINE", "INSERT"})

# 顶点标志：128 多面网格顶点，64 为多面网格坐标顶点
_VERTEX_FACE_RECORD = 128
_VERTEX_POLYFACE_MESH = 64


class EntityDecodeError(Exception):
    """单个实体校验失败（内部使用，由解码器转换为诊断）"""

    def __init__(self, code: DiagnosticCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message


def _finite(*values: float | None) -> bool:
    return all(v is not None and math.isfinite(v) for v in values)


class EntityDecoder:
    """实体解码器"""

    def __init__(self, reporter: DiagnosticsReporter | None = None):
        self.reporter = reporter or DiagnosticsReporter(log_records=False)
        self._decoders: dict[str, Callable[[TagReader, list[list[DXFTag]]], dict]] = {
            "POINT": self._decode_point,
            "LINE": self._decode_line,
            "LWPOLYLINE": self._decode_lwpolyline,
            "POLYLINE": self._decode_polyline,
            "CIRCLE": self._decode_circle,
            "ARC": self._decode_arc,
            "ELLIPSE": self._decode_ellipse,
            "SPLINE": self._decode_spline,
            "INSERT": self._decode_insert,
            "TEXT": self._decode_text,
            "MTEXT": self._decode_text,
            "HATCH": self._decode_hatch,
            "3DFACE": self._decode_face,
            "SOLID": self._decode_face,
            "DIMENSION": self._decode_dimension,
            "LEADER": self._decode_leader,
            "MLEADER": self._decode_leader,
            "RAY": self._decode_ray,
            "XLINE": self._decode_ray,
        }
        self._models = {
            "POINT": PointEntity,
            "LINE": LineEntity,
            "LWPOLYLINE": PolylineEntity,
            "POLYLINE": PolylineEntity,
            "CIRCLE": CircleEntity,
            "ARC": ArcEntity,
            "ELLIPSE": EllipseEntity,
            "SPLINE": SplineEntity,
            "INSERT": InsertEntity,
            "TEXT": TextEntity,
            "MTEXT": TextEntity,
            "HATCH": HatchEntity,
            "3DFACE": FaceEntity,
            "SOLID": FaceEntity,
            "DIMENSION": DimensionEntity,
            "LEADER": LeaderEntity,
            "MLEADER": LeaderEntity,
            "RAY": RayEntity,
            "XLINE": RayEntity,
        }

    # === 游程级接口 ===

    def decode_runs(self, runs: Iterable[list[DXFTag]]) -> list[Entity]:
        """
        解码一串实体游程

        POLYLINE 吸收其后的 VERTEX 直到 SEQEND；
        INSERT 吸收其后的 ATTRIB 直到 SEQEND。
        """
        entities: list[Entity] = []
        pending: list[DXFTag] | None = None
        children: list[list[DXFTag]] = []

        def flush() -> None:
            nonlocal pending, children
            if pending is not None:
                entity = self.decode(pending, children)
                if entity is not None:
                    entities.append(entity)
            pending, children = None, []

        for run in runs:
            kind = run[0].value
            if pending is not None and pending[0].value in _OWNER_TYPES:
                if kind in _CHILD_TYPES:
                    children.append(run)
                    continue
                if kind == "SEQEND":
                    flush()
                    continue
            if kind == "SEQEND" or kind in _CHILD_TYPES:
                # 孤立的子记录
                continue
            flush()
            pending = run
        flush()
        logger.debug(f"解码实体 {len(entities)} 个")
        return entities

    def decode(self, tags: list[DXFTag], children: list[list[DXFTag]] | None = None) -> Entity | None:
        """解码单个实体，失败返回None并记录诊断"""
        reader = TagReader(tags)
        entity_type = reader.entity_type
        handle = reader.get(5)

        decoder = self._decoders.get(entity_type)
        if decoder is None:
            self.reporter.warning(
                DiagnosticCode.UNSUPPORTED_ENTITY,
                f"不支持的实体类型: {entity_type}",
                {"type": entity_type, "handle": handle},
            )
            return None

        try:
            fields = decoder(reader, children or [])
            return self._models[entity_type](type=entity_type, **self._common(reader), **fields)
        except EntityDecodeError as e:
            self.reporter.warning(
                e.code,
                f"{entity_type} {handle or '?'}: {e.message}",
                {"type": entity_type, "handle": handle},
            )
        except ValueError as e:
            self.reporter.warning(
                DiagnosticCode.CONVERSION_ERROR,
                f"{entity_type} 构造失败: {e}",
                {"type": entity_type, "handle": handle},
            )
        return None

    # === 公共属性 ===

    def _common(self, reader: TagReader) -> dict:
        extrusion = reader.get_point(210) if 210 in reader else None
        return {
            "layer": reader.get(8) or "0",
            "handle": reader.get(5),
            "color": reader.get_int(62),
            "true_color": reader.get_int(420),
            "line_type": reader.get(6),
            "line_weight": reader.get_int(370),
            "thickness": reader.get_float(39, 0.0),
            "elevation": reader.get_float(38, 0.0),
            "visible": reader.get_int(60, 0) != 1,
            "extrusion": extrusion if extrusion is not None else Z_AXIS,
        }

    @staticmethod
    def _require_point(reader: TagReader, x_code: int, label: str = "位置") -> Vector3:
        point = reader.get_point(x_code)
        if point is None:
            raise EntityDecodeError(DiagnosticCode.INVALID_POSITION, f"{label}缺失或非有限值")
        return point

    @staticmethod
    def _require_vertices(points: list[Vector3 | None], minimum: int = 2) -> tuple[Vector3, ...]:
        if any(p is None for p in points):
            raise EntityDecodeError(DiagnosticCode.INVALID_VERTEX, "顶点缺失分量或非有限值")
        if len(points) < minimum:
            raise EntityDecodeError(
                DiagnosticCode.INSUFFICIENT_VERTICES,
                f"顶点数 {len(points)} 少于 {minimum}",
            )
        return tuple(points)

    # === 各类型 ===

    def _decode_point(self, reader: TagReader, children) -> dict:
        return {
            "position": self._require_point(reader, 10),
            "angle": reader.get_float(50, 0.0),
        }

    def _decode_line(self, reader: TagReader, children) -> dict:
        return {
            "start": self._require_point(reader, 10, "起点"),
            "end": self._require_point(reader, 11, "终点"),
        }

    def _decode_lwpolyline(self, reader: TagReader, children) -> dict:
        elevation = reader.get_float(38, 0.0)
        raw: list[list[float | None]] = []
        bulges: list[float] = []
        for tag in reader.tags:
            if tag.code == 10:
                raw.append([parse_float(tag.value), None])
                bulges.append(0.0)
            elif raw and tag.code == 20:
                raw[-1][1] = parse_float(tag.value)
            elif raw and tag.code == 42:
                bulge = parse_float(tag.value)
                if not _finite(bulge):
                    raise EntityDecodeError(DiagnosticCode.INVALID_VERTEX, "凸度非有限值")
                bulges[-1] = bulge

        vertices = self._require_vertices([make_point(x, y, elevation) for x, y in raw])
        return {
            "vertices": vertices,
            "bulges": tuple(bulges),
            "closed": bool(reader.get_int(70, 0) & 1),
            "constant_width": reader.get_float(43),
        }

    def _decode_polyline(self, reader: TagReader, children: list[list[DXFTag]]) -> dict:
        points: list[Vector3 | None] = []
        bulges: list[float] = []
        for child in children:
            vertex = TagReader(child)
            if vertex.entity_type != "VERTEX":
                continue
            flags = vertex.get_int(70, 0)
            if flags & _VERTEX_FACE_RECORD and not flags & _VERTEX_POLYFACE_MESH:
                continue
            points.append(vertex.get_point(10))
            bulge = vertex.get_float(42, 0.0)
            bulges.append(bulge if math.isfinite(bulge) else 0.0)

        return {
            "vertices": self._require_vertices(points),
            "bulges": tuple(bulges),
            "closed": bool(reader.get_int(70, 0) & 1),
            "constant_width": reader.get_float(40),
        }

    def _decode_circle(self, reader: TagReader, children) -> dict:
        center = self._require_point(reader, 10, "圆心")
        radius = reader.get_float(40)
        if not _finite(radius) or radius <= 0:
            raise EntityDecodeError(DiagnosticCode.INVALID_RADIUS, f"半径非法: {radius}")
        return {"center": center, "radius": radius}

    def _decode_arc(self, reader: TagReader, children) -> dict:
        fields = self._decode_circle(reader, children)
        start = reader.get_float(50)
        end = reader.get_float(51)
        if not _finite(start, end):
            raise EntityDecodeError(DiagnosticCode.INVALID_ANGLES, f"角度非法: {start}, {end}")
        return {**fields, "start_angle": start, "end_angle": end}

    def _decode_ellipse(self, reader: TagReader, children) -> dict:
        center = self._require_point(reader, 10, "中心")
        major = reader.get_point(11)
        if major is None or (major.x == 0 and major.y == 0 and major.z == 0):
            raise EntityDecodeError(DiagnosticCode.INVALID_ELLIPSE_AXIS, "长轴缺失或为零向量")
        ratio = reader.get_float(40)
        if not _finite(ratio) or ratio <= 0 or ratio > 1:
            raise EntityDecodeError(DiagnosticCode.INVALID_ELLIPSE_AXIS, f"短长轴比非法: {ratio}")
        start = reader.get_float(41, 0.0)
        end = reader.get_float(42, 2 * math.pi)
        if not _finite(start, end):
            raise EntityDecodeError(DiagnosticCode.INVALID_ANGLES, f"参数非法: {start}, {end}")
        return {
            "center": center,
            "major_axis": major,
            "minor_axis_ratio": ratio,
            "start_angle": start,
            "end_angle": end,
        }

    def _decode_spline(self, reader: TagReader, children) -> dict:
        control = reader.collect_points(10)
        fit = reader.collect_points(11)
        if any(p is None for p in control) or any(p is None for p in fit):
            raise EntityDecodeError(DiagnosticCode.INVALID_SPLINE, "控制点/拟合点非有限值")
        if len(control) < 2 and len(fit) < 2:
            raise EntityDecodeError(
                DiagnosticCode.INVALID_SPLINE,
                f"控制点 {len(control)} 个，拟合点 {len(fit)} 个，不足以成线",
            )
        degree = reader.get_int(71, 3)
        if degree < 1:
            raise EntityDecodeError(DiagnosticCode.INVALID_SPLINE, f"阶数非法: {degree}")
        knots = [parse_float(v) for v in reader.values(40)]
        return {
            "control_points": tuple(control) if len(control) >= 2 else (),
            "fit_points": tuple(fit),
            "knots": tuple(k for k in knots if _finite(k)),
            "degree": degree,
            "closed": bool(reader.get_int(70, 0) & 1),
        }

    def _decode_insert(self, reader: TagReader, children: list[list[DXFTag]]) -> dict:
        position = self._require_point(reader, 10, "插入点")
        name = (reader.get(2) or "").strip()
        if not name:
            raise EntityDecodeError(DiagnosticCode.INVALID_INSERT, "缺少图块名")

        scales = [reader.get_float(code, 1.0) for code in (41, 42, 43)]
        if not _finite(*scales) or any(s == 0 for s in scales):
            raise EntityDecodeError(DiagnosticCode.INVALID_INSERT, f"比例非法: {scales}")
        rotation = reader.get_float(50, 0.0)
        col_spacing = reader.get_float(44, 0.0)
        row_spacing = reader.get_float(45, 0.0)
        if not _finite(rotation, col_spacing, row_spacing):
            raise EntityDecodeError(DiagnosticCode.INVALID_INSERT, "旋转角或阵列间距非有限值")

        attributes: dict[str, str] = {}
        for child in children:
            attrib = TagReader(child)
            if attrib.entity_type != "ATTRIB":
                continue
            tag = attrib.get(2)
            if tag:
                attributes[tag] = plain_text(attrib.get(1, "") or "")

        return {
            "block_name": name,
            "position": position,
            "x_scale": scales[0],
            "y_scale": scales[1],
            "z_scale": scales[2],
            "rotation": rotation,
            "column_count": max(1, reader.get_int(70, 1)),
            "row_count": max(1, reader.get_int(71, 1)),
            "column_spacing": col_spacing,
            "row_spacing": row_spacing,
            "attributes": attributes,
        }

    def _decode_text(self, reader: TagReader, children) -> dict:
        position = self._require_point(reader, 10, "插入点")
        if 1 not in reader:
            raise EntityDecodeError(DiagnosticCode.INVALID_TEXT, "缺少文字内容")

        if reader.entity_type == "MTEXT":
            raw = "".join(reader.values(3)) + (reader.get(1) or "")
            text = plain_mtext(raw)
            rotation = reader.get_float(50)
            if rotation is None and 11 in reader:
                direction = reader.get_point(11)
                if direction is not None and (direction.x or direction.y):
                    rotation = math.degrees(math.atan2(direction.y, direction.x))
        else:
            text = plain_text(reader.get(1) or "")
            rotation = reader.get_float(50)

        rotation = rotation if _finite(rotation) else 0.0
        height = reader.get_float(40)
        width = reader.get_float(41)
        return {
            "position": position,
            "text": text,
            "height": height if _finite(height) else None,
            "rotation": rotation,
            "width": width if _finite(width) else None,
            "style": reader.get(7),
        }

    def _decode_hatch(self, reader: TagReader, children) -> dict:
        pattern = (reader.get(2) or "").strip()
        if not pattern:
            raise EntityDecodeError(DiagnosticCode.INVALID_HATCH, "缺少填充图案名")

        boundaries = decode_hatch_boundaries(reader.tags)
        handle = reader.get(5)
        if boundaries.error:
            self.reporter.warning(
                DiagnosticCode.INVALID_HATCH_BOUNDARY,
                f"HATCH {handle or ''} 边界路径格式错误: {boundaries.error}",
                {"handle": handle},
            )

        elevation = reader.get_float(30, 0.0)
        elevation = elevation if math.isfinite(elevation) else 0.0
        rings: list[tuple[Vector3, ...]] = []
        for index, ring in enumerate(boundaries.rings):
            if len(ring) < 3:
                self.reporter.warning(
                    DiagnosticCode.INVALID_HATCH_BOUNDARY,
                    f"HATCH {handle or ''} 边界 {index} 点数 {len(ring)} 少于 3",
                    {"handle": handle, "boundary": index},
                )
                continue
            rings.append(tuple(Vector3(x=x, y=y, z=elevation) for x, y in ring))

        if not rings:
            raise EntityDecodeError(DiagnosticCode.INVALID_HATCH, "没有有效边界")
        return {
            "pattern_name": pattern,
            "solid_fill": reader.get_int(70, 0) == 1,
            "boundaries": tuple(rings),
        }

    def _decode_face(self, reader: TagReader, children) -> dict:
        corners = [reader.get_point(code) for code in (10, 11, 12)]
        if any(c is None for c in corners):
            raise EntityDecodeError(DiagnosticCode.INVALID_VERTEX, "前三个角点缺失或非有限值")
        fourth = reader.get_point(13)
        if fourth is not None and fourth != corners[2]:
            if reader.entity_type == "SOLID":
                # SOLID 第3、4角点交叉存储
                corners = [corners[0], corners[1], fourth, corners[2]]
            else:
                corners.append(fourth)
        return {"vertices": tuple(corners)}

    def _decode_dimension(self, reader: TagReader, children) -> dict:
        measurement = reader.get_float(42)
        return {
            "position": self._require_point(reader, 10, "定义点"),
            "text_midpoint": reader.get_point(11),
            "text": reader.get(1) or None,
            "measurement": measurement if _finite(measurement) else None,
            "dimension_type": reader.get_int(70, 0),
            "block_name": reader.get(2),
        }

    def _decode_leader(self, reader: TagReader, children) -> dict:
        return {
            "vertices": self._require_vertices(reader.collect_points(10)),
            "has_arrowhead": reader.get_int(71, 1) != 0,
        }

    def _decode_ray(self, reader: TagReader, children) -> dict:
        base = self._require_point(reader, 10, "基点")
        direction = reader.get_point(11)
        if direction is None or (direction.x == 0 and direction.y == 0 and direction.z == 0):
            raise EntityDecodeError(DiagnosticCode.INVALID_DIRECTION, "方向缺失或为零向量")
        return {"base_point": base, "direction": direction}


def decode_entity(tags: list[DXFTag], reporter: DiagnosticsReporter | None = None) -> Entity | None:
    """便捷函数：解码单个实体"""
    return EntityDecoder(reporter).decode(tags)


