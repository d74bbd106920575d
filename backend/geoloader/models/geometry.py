"""
基础几何模型 - 三维点与二维范围
"""

from __future__ import annotations

from collections.abc import Iterable

from ezdxf.math import Vec3
from pydantic import BaseModel


class Vector3(BaseModel):
    """三维点（z 缺省为 0）"""
    x: float
    y: float
    z: float = 0.0

    model_config = {"frozen": True, "allow_inf_nan": False}

    @classmethod
    def from_vec3(cls, v: Vec3) -> Vector3:
        return cls(x=v.x, y=v.y, z=v.z)

    def to_vec3(self) -> Vec3:
        return Vec3(self.x, self.y, self.z)

    def xy(self) -> list[float]:
        return [self.x, self.y]


class Bounds(BaseModel):
    """二维范围"""
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    def contains(self, x: float, y: float) -> bool:
        """判断点是否在范围内（含边界）"""
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    @classmethod
    def from_points(cls, points: Iterable[tuple[float, float]]) -> Bounds | None:
        """由点集计算外包范围，空集返回None"""
        min_x = min_y = float("inf")
        max_x = max_y = float("-inf")
        for x, y in points:
            min_x = min(min_x, x)
            min_y = min(min_y, y)
            max_x = max(max_x, x)
            max_y = max(max_y, y)
        if min_x == float("inf"):
            return None
        return cls(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)
