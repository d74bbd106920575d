"""
要素模型 - GeoJSON 形状的输出结构与导入结果
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Literal

from pydantic import BaseModel, Field

from .diagnostic import Diagnostic
from .geometry import Bounds
from .sia import SiaHeader

GeometryType = Literal["Point", "LineString", "Polygon", "MultiPolygon"]


class Geometry(BaseModel):
    """GeoJSON 几何"""
    type: GeometryType
    coordinates: list[Any]

    def iter_positions(self) -> Iterator[list[float]]:
        """遍历所有坐标位置（[x, y] 或 [x, y, z]）"""
        if self.type == "Point":
            yield self.coordinates
        elif self.type == "LineString":
            yield from self.coordinates
        elif self.type == "Polygon":
            for ring in self.coordinates:
                yield from ring
        else:
            for polygon in self.coordinates:
                for ring in polygon:
                    yield from ring

    def map_positions(self, func) -> Geometry:
        """逐点映射，返回新几何（结构不变）"""
        if self.type == "Point":
            coords: list[Any] = func(self.coordinates)
        elif self.type == "LineString":
            coords = [func(p) for p in self.coordinates]
        elif self.type == "Polygon":
            coords = [[func(p) for p in ring] for ring in self.coordinates]
        else:
            coords = [[[func(p) for p in ring] for ring in poly] for poly in self.coordinates]
        return Geometry(type=self.type, coordinates=coords)


class Feature(BaseModel):
    """GeoJSON 要素"""
    type: Literal["Feature"] = "Feature"
    geometry: Geometry
    properties: dict[str, Any] = Field(default_factory=dict)

    def to_geojson(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ImportStats(BaseModel):
    """导入统计"""
    total_entities: int = 0
    expanded_entities: int = 0
    converted: int = 0
    failed: int = 0
    skipped: int = 0
    layers: int = 0
    blocks: int = 0


class ImportResult(BaseModel):
    """单次导入的完整结果"""
    features: list[Feature] = Field(default_factory=list)
    bounds: Bounds | None = Field(None, description="输出坐标系下的范围")
    raw_bounds: Bounds | None = Field(None, description="源图纸坐标下的范围")
    detected_crs: str | None = None
    source_crs: str | None = None
    target_crs: str | None = None
    diagnostics: list[Diagnostic] = Field(default_factory=list)
    stats: ImportStats = Field(default_factory=ImportStats)
    sia_header: SiaHeader | None = Field(None, description="SIA 2014 文件头（文件未声明时为空）")

    def to_feature_collection(self) -> dict[str, Any]:
        """导出为 GeoJSON FeatureCollection"""
        return {
            "type": "FeatureCollection",
            "features": [f.to_geojson() for f in self.features],
        }


class PersistResult(BaseModel):
    """持久化结果"""
    imported: int = 0
    failed: int = 0
