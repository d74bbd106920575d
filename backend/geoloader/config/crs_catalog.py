"""
坐标系目录加载器 - 读取 config/coordinate_systems.yaml

职责：
- 解析内置坐标系定义（WGS84 / LV95 / LV03）与自检参考点
- 类型安全访问
- 缓存加载结果（避免重复解析）

使用方式：
    catalog = CrsCatalogLoader.load()
    lv95 = catalog.get_system("EPSG:2056")
    points = catalog.verification_points
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_CATALOG_PATH = Path(__file__).parent / "coordinate_systems.yaml"


class CoordinateSystemDefinition(BaseModel):
    """坐标系定义"""
    code: str
    proj4def: str
    bounds: tuple[float, float, float, float] | None = Field(
        None, description="有效范围 [min_x, min_y, max_x, max_y]"
    )
    units: str = "m"
    description: str = ""

    model_config = {"frozen": True}

    @field_validator("bounds", mode="before")
    @classmethod
    def _coerce_bounds(cls, v):
        if v is None:
            return None
        if isinstance(v, dict):
            return (v["min_x"], v["min_y"], v["max_x"], v["max_y"])
        return tuple(v)


class VerificationPoint(BaseModel):
    """自检参考点：source 坐标转换到 target 后应接近 expected"""
    source: str
    target: str = "EPSG:4326"
    point: tuple[float, float]
    expected: tuple[float, float]


class CrsCatalog(BaseModel):
    """坐标系目录"""
    schema_version: str = "1"
    systems: list[CoordinateSystemDefinition] = Field(default_factory=list)
    verification_points: list[VerificationPoint] = Field(default_factory=list)

    def get_system(self, code: str) -> CoordinateSystemDefinition | None:
        for system in self.systems:
            if system.code == code:
                return system
        return None

    @property
    def codes(self) -> list[str]:
        return [s.code for s in self.systems]


class CrsCatalogLoader:
    """坐标系目录加载器（缓存）"""

    @classmethod
    @lru_cache(maxsize=4)
    def load(cls, catalog_path: str | Path = DEFAULT_CATALOG_PATH) -> CrsCatalog:
        """加载并缓存目录"""
        path = Path(catalog_path)
        if not path.exists():
            raise FileNotFoundError(f"坐标系目录不存在: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        return CrsCatalog(**data)

    @classmethod
    def reload(cls, catalog_path: str | Path = DEFAULT_CATALOG_PATH) -> CrsCatalog:
        """强制重新加载（清除缓存）"""
        cls.load.cache_clear()
        return cls.load(catalog_path)


# 便捷函数
def load_crs_catalog(catalog_path: str | Path | None = None) -> CrsCatalog:
    """加载坐标系目录"""
    return CrsCatalogLoader.load(catalog_path or DEFAULT_CATALOG_PATH)
