"""
配置层 - 加载运行期配置与坐标系目录

职责：
- 加载 config/geoloader_runtime.yaml（运行期参数）
- 加载 coordinate_systems.yaml（内置坐标系与自检参考点）
- 提供类型安全的配置访问接口
"""

from .crs_catalog import (
    CoordinateSystemDefinition,
    CrsCatalog,
    CrsCatalogLoader,
    VerificationPoint,
    load_crs_catalog,
)
from .runtime_config import RuntimeConfig, get_config, reload_config

__all__ = [
    "CrsCatalogLoader",
    "CrsCatalog",
    "CoordinateSystemDefinition",
    "VerificationPoint",
    "load_crs_catalog",
    "RuntimeConfig",
    "get_config",
    "reload_config",
]
