"""
组码读取工具 - 在一个实体游程内按组码取值
"""

from __future__ import annotations

import math

from ezdxf.lldxf.types import DXFTag

from ...models import Vector3


def parse_float(value: str | None) -> float | None:
    """解析浮点数，无法解析返回None（不过滤 NaN/Inf）"""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        f = parse_float(value)
        return int(f) if f is not None and math.isfinite(f) else None


def make_point(x: float | None, y: float | None, z: float | None = 0.0) -> Vector3 | None:
    """三个分量均有限时构造点，否则返回None"""
    if x is None or y is None:
        return None
    z = 0.0 if z is None else z
    if not (math.isfinite(x) and math.isfinite(y) and math.isfinite(z)):
        return None
    return Vector3(x=x, y=y, z=z)


class TagReader:
    """实体游程读取器（首个组码对为 (0, TYPE)）"""

    def __init__(self, tags: list[DXFTag]):
        self.tags = tags
        self.entity_type = tags[0].value if tags and tags[0].code == 0 else ""

    def __contains__(self, code: int) -> bool:
        return any(t.code == code for t in self.tags)

    def get(self, code: int, default: str | None = None) -> str | None:
        """取第一个匹配组码的值"""
        for tag in self.tags:
            if tag.code == code:
                return tag.value
        return default

    def values(self, code: int) -> list[str]:
        return [t.value for t in self.tags if t.code == code]

    def get_float(self, code: int, default: float | None = None) -> float | None:
        value = parse_float(self.get(code))
        return default if value is None else value

    def get_int(self, code: int, default: int | None = None) -> int | None:
        value = parse_int(self.get(code))
        return default if value is None else value

    def get_point(self, x_code: int) -> Vector3 | None:
        """读取 x_code / x_code+10 / x_code+20 组成的点"""
        return make_point(
            parse_float(self.get(x_code)),
            parse_float(self.get(x_code + 10)),
            self.get_float(x_code + 20, 0.0),
        )

    def collect_points(self, x_code: int) -> list[Vector3 | None]:
        """
        按出现顺序收集重复点（每遇到 x_code 开始一个新点）

        缺分量或非有限的点以None占位，便于调用方报告。
        """
        raw: list[list[float | None]] = []
        for tag in self.tags:
            if tag.code == x_code:
                raw.append([parse_float(tag.value), None, 0.0])
            elif raw and tag.code == x_code + 10:
                raw[-1][1] = parse_float(tag.value)
            elif raw and tag.code == x_code + 20:
                raw[-1][2] = parse_float(tag.value)
        return [make_point(x, y, z) for x, y, z in raw]
