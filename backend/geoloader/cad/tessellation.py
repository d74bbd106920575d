"""
曲线折线化 - 圆/圆弧/椭圆/凸度段转换为点序列

固定分辨率：整圆 32 段；凸度段按扫掠角比例取段数（至少 2 段）。
"""

from __future__ import annotations

import math

from ezdxf.math import Vec2, bulge_to_arc

ARC_SEGMENTS = 32
TWO_PI = 2.0 * math.pi


def sweep_degrees(start: float, end: float) -> float:
    """逆时针扫掠角（end ≤ start 时补一整圈）"""
    sweep = end - start
    if sweep <= 0:
        sweep += 360.0
    return sweep


def arc_points(
    cx: float,
    cy: float,
    radius: float,
    start_deg: float,
    sweep_deg: float,
    segments: int = ARC_SEGMENTS,
) -> list[tuple[float, float]]:
    """按起始角与扫掠角（度，可为负）生成 segments+1 个点"""
    start = math.radians(start_deg)
    sweep = math.radians(sweep_deg)
    return [
        (
            cx + radius * math.cos(start + sweep * i / segments),
            cy + radius * math.sin(start + sweep * i / segments),
        )
        for i in range(segments + 1)
    ]


def ellipse_points(
    cx: float,
    cy: float,
    major_x: float,
    major_y: float,
    ratio: float,
    start_param: float,
    sweep_param: float,
    segments: int = ARC_SEGMENTS,
) -> list[tuple[float, float]]:
    """椭圆参数方程：P(t) = C + cos(t)·M + sin(t)·(ratio·M⊥)，参数为弧度"""
    minor_x = -major_y * ratio
    minor_y = major_x * ratio
    points = []
    for i in range(segments + 1):
        t = start_param + sweep_param * i / segments
        c, s = math.cos(t), math.sin(t)
        points.append((cx + c * major_x + s * minor_x, cy + c * major_y + s * minor_y))
    return points


def segments_for_sweep(sweep_rad: float) -> int:
    """按整圆32段的比例取段数"""
    return max(2, math.ceil(ARC_SEGMENTS * abs(sweep_rad) / TWO_PI))


def bulge_points(
    start: tuple[float, float],
    end: tuple[float, float],
    bulge: float,
) -> list[tuple[float, float]]:
    """
    凸度段折线化（含起点与终点）

    凸度为正时逆时针；bulge_to_arc 总是返回逆时针的起止角，
    负凸度时点序反转以保持从 start 走到 end。
    """
    if bulge == 0.0 or start == end:
        return [start, end]

    center, start_angle, end_angle, radius = bulge_to_arc(Vec2(start), Vec2(end), bulge)
    sweep = end_angle - start_angle
    if sweep <= 0:
        sweep += TWO_PI
    segments = segments_for_sweep(sweep)

    points = [
        (
            center.x + radius * math.cos(start_angle + sweep * i / segments),
            center.y + radius * math.sin(start_angle + sweep * i / segments),
        )
        for i in range(segments + 1)
    ]
    if bulge < 0:
        points.reverse()
    # 端点取原值，避免浮点误差
    points[0] = start
    points[-1] = end
    return points


def densify_bulged(
    vertices: list[tuple[float, float]],
    bulges: list[float],
    closed: bool,
) -> list[tuple[float, float]]:
    """带凸度折线展开为点序列（闭合时包含回到起点的段，但不重复首点）"""
    if not vertices:
        return []
    count = len(vertices)
    result: list[tuple[float, float]] = [vertices[0]]
    last = count if closed else count - 1
    for i in range(last):
        p1 = vertices[i]
        p2 = vertices[(i + 1) % count]
        bulge = bulges[i] if i < len(bulges) else 0.0
        result.extend(bulge_points(p1, p2, bulge)[1:])
    if closed and len(result) > 1 and result[-1] == result[0]:
        result.pop()
    return result
