"""
HATCH 边界解码 - 将边界路径展开为点环

职责：
1. 多段线路径（72 凸度标志 / 73 闭合 / 93 顶点数 / 10,20[,42]）
2. 边界路径（93 边数；72 边类型：1 直线 / 2 圆弧 / 3 椭圆弧 / 4 样条）
3. 每条路径以 97 + 330 源对象句柄结束

约束：
- 路径按计数顺序解析，格式错位时停止解析后续路径
- 点数不足 3 的环由调用方报告
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from ezdxf.lldxf.types import DXFTag

from ..tessellation import (
    densify_bulged,
    ellipse_points,
    segments_for_sweep,
)
from .group_codes import parse_float, parse_int

PATH_FLAG_POLYLINE = 2

EDGE_LINE = 1
EDGE_ARC = 2
EDGE_ELLIPSE = 3
EDGE_SPLINE = 4


class HatchFormatError(ValueError):
    """边界路径组码错位"""


@dataclass
class HatchBoundaries:
    """边界解析结果"""
    rings: list[list[tuple[float, float]]] = field(default_factory=list)
    declared_paths: int = 0
    error: str | None = None


class _TagCursor:
    """顺序读取游标"""

    def __init__(self, tags: list[DXFTag], index: int = 0):
        self.tags = tags
        self.index = index

    def peek_code(self, offset: int = 0) -> int | None:
        position = self.index + offset
        if position < len(self.tags):
            return self.tags[position].code
        return None

    def take(self, code: int) -> str:
        if self.peek_code() != code:
            found = self.peek_code()
            raise HatchFormatError(f"期望组码 {code}，实际 {found}")
        value = self.tags[self.index].value
        self.index += 1
        return value

    def take_float(self, code: int) -> float:
        value = parse_float(self.take(code))
        if value is None or not math.isfinite(value):
            raise HatchFormatError(f"组码 {code} 不是有限数值")
        return value

    def take_int(self, code: int) -> int:
        value = parse_int(self.take(code))
        if value is None:
            raise HatchFormatError(f"组码 {code} 不是整数")
        return value

    def take_optional_float(self, code: int, default: float) -> float:
        if self.peek_code() == code:
            return self.take_float(code)
        return default

    def take_point(self, x_code: int) -> tuple[float, float]:
        x = self.take_float(x_code)
        y = self.take_float(x_code + 10)
        return (x, y)


def decode_hatch_boundaries(tags: list[DXFTag]) -> HatchBoundaries:
    """解析 HATCH 实体游程中的全部边界路径"""
    result = HatchBoundaries()
    start = next((i for i, t in enumerate(tags) if t.code == 91), None)
    if start is None:
        return result

    cursor = _TagCursor(tags, start)
    try:
        result.declared_paths = cursor.take_int(91)
        for _ in range(result.declared_paths):
            flags = cursor.take_int(92)
            if flags & PATH_FLAG_POLYLINE:
                ring = _read_polyline_path(cursor)
            else:
                ring = _read_edge_path(cursor)
            _skip_source_handles(cursor)
            result.rings.append(ring)
    except HatchFormatError as e:
        result.error = str(e)
    return result


def _read_polyline_path(cursor: _TagCursor) -> list[tuple[float, float]]:
    has_bulge = cursor.take_int(72) != 0
    closed = cursor.take_int(73) != 0
    count = cursor.take_int(93)

    vertices: list[tuple[float, float]] = []
    bulges: list[float] = []
    for _ in range(count):
        vertices.append(cursor.take_point(10))
        bulge = cursor.take_optional_float(42, 0.0) if has_bulge else 0.0
        bulges.append(bulge)

    # 边界路径总是闭合的；73 仅表示首尾是否重复
    ring = densify_bulged(vertices, bulges, closed=True)
    if not closed and len(ring) > 1 and ring[-1] == ring[0]:
        ring.pop()
    return ring


def _read_edge_path(cursor: _TagCursor) -> list[tuple[float, float]]:
    edge_count = cursor.take_int(93)
    ring: list[tuple[float, float]] = []
    for _ in range(edge_count):
        edge_type = cursor.take_int(72)
        if edge_type == EDGE_LINE:
            points = [cursor.take_point(10), cursor.take_point(11)]
        elif edge_type == EDGE_ARC:
            points = _read_arc_edge(cursor)
        elif edge_type == EDGE_ELLIPSE:
            points = _read_ellipse_edge(cursor)
        elif edge_type == EDGE_SPLINE:
            points = _read_spline_edge(cursor)
        else:
            raise HatchFormatError(f"未知边类型: {edge_type}")
        _append_chain(ring, points)

    if len(ring) > 1 and ring[-1] == ring[0]:
        ring.pop()
    return ring


def _directed_sweep(start_deg: float, end_deg: float, ccw: bool) -> tuple[float, float]:
    """
    计算边的起始角与有向扫掠角（度）

    顺时针边的角度按镜像存储，取反后沿顺时针方向扫掠。
    """
    if ccw:
        sweep = end_deg - start_deg
        if sweep <= 0:
            sweep += 360.0
        return start_deg, sweep
    start, end = -start_deg, -end_deg
    sweep = end - start
    if sweep >= 0:
        sweep -= 360.0
    return start, sweep


def _read_arc_edge(cursor: _TagCursor) -> list[tuple[float, float]]:
    cx, cy = cursor.take_point(10)
    radius = cursor.take_float(40)
    start_deg = cursor.take_float(50)
    end_deg = cursor.take_float(51)
    ccw = cursor.take_int(73) != 0 if cursor.peek_code() == 73 else True

    start, sweep = _directed_sweep(start_deg, end_deg, ccw)
    segments = segments_for_sweep(math.radians(sweep))
    return [
        (
            cx + radius * math.cos(math.radians(start + sweep * i / segments)),
            cy + radius * math.sin(math.radians(start + sweep * i / segments)),
        )
        for i in range(segments + 1)
    ]


def _read_ellipse_edge(cursor: _TagCursor) -> list[tuple[float, float]]:
    cx, cy = cursor.take_point(10)
    mx, my = cursor.take_point(11)
    ratio = cursor.take_float(40)
    start_deg = cursor.take_float(50)
    end_deg = cursor.take_float(51)
    ccw = cursor.take_int(73) != 0 if cursor.peek_code() == 73 else True

    start, sweep = _directed_sweep(start_deg, end_deg, ccw)
    segments = segments_for_sweep(math.radians(sweep))
    return ellipse_points(cx, cy, mx, my, ratio, math.radians(start), math.radians(sweep), segments)


def _read_spline_edge(cursor: _TagCursor) -> list[tuple[float, float]]:
    """样条边：按控制点（或拟合点）取折线"""
    cursor.take_int(94)  # degree
    rational = cursor.take_int(73) != 0
    cursor.take_int(74)  # periodic
    knot_count = cursor.take_int(95)
    control_count = cursor.take_int(96)

    for _ in range(knot_count):
        cursor.take_float(40)

    control_points: list[tuple[float, float]] = []
    for _ in range(control_count):
        control_points.append(cursor.take_point(10))
        if rational:
            cursor.take_optional_float(42, 1.0)

    fit_points: list[tuple[float, float]] = []
    # R2010 前的文件没有拟合数据，此处的 97 是源对象句柄数
    if cursor.peek_code() == 97 and cursor.peek_code(1) == 11:
        fit_count = cursor.take_int(97)
        for _ in range(fit_count):
            fit_points.append(cursor.take_point(11))
        # 起止切线（可选）
        if cursor.peek_code() == 12:
            cursor.take_point(12)
        if cursor.peek_code() == 13:
            cursor.take_point(13)

    points = control_points or fit_points
    if len(points) < 2:
        raise HatchFormatError("样条边控制点不足")
    return points


def _skip_source_handles(cursor: _TagCursor) -> None:
    if cursor.peek_code() != 97:
        return
    count = cursor.take_int(97)
    for _ in range(count):
        if cursor.peek_code() != 330:
            break
        cursor.take(330)


def _append_chain(ring: list[tuple[float, float]], points: list[tuple[float, float]]) -> None:
    """拼接边，去掉与上一条边终点重合的起点"""
    if ring and points and ring[-1] == points[0]:
        points = points[1:]
    ring.extend(points)
