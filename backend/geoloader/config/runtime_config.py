"""
运行期配置 - 读取 config/geoloader_runtime.yaml

职责：
- 加载解析/几何/坐标系/诊断/日志参数
- 提供环境变量覆盖机制（GEOLOADER_ 前缀，__ 分隔嵌套字段）
- 类型安全的配置访问
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

DEFAULT_CONFIG_PATH = Path("config/geoloader_runtime.yaml")


class ParserConfig(BaseModel):
    """解析配置"""

    encoding: str = "utf-8"
    skip_frozen_layers: bool = True
    skip_off_layers: bool = True
    skip_invisible_entities: bool = True
    sia_enabled: bool = True  # 读取并校验 SIA 2014 文件头与图层名


class GeometryConfig(BaseModel):
    """几何转换配置"""

    ray_length: float = 1e6
    keep_insert_markers: bool = False


class ExtraSystemConfig(BaseModel):
    """附加坐标系定义"""

    code: str
    proj4def: str
    bounds: list[float] | None = None
    units: str = "m"
    description: str = ""


class CRSConfig(BaseModel):
    """坐标系配置"""

    target_system: str = "EPSG:4326"
    source_system: str | None = None
    auto_detect: bool = True
    transform_to_target: bool = True
    cache_max_size: int = 10000
    verification_tolerance_deg: float = 0.5
    catalog_path: str | None = None
    extra_systems: list[ExtraSystemConfig] = Field(default_factory=list)


class DiagnosticsConfig(BaseModel):
    """诊断配置"""

    max_records: int = 1000
    min_severity: str = "info"
    log_records: bool = True


class LoggingConfig(BaseModel):
    """日志配置"""

    log_level: str = "INFO"


class RuntimeConfig(BaseSettings):
    """运行期配置（支持环境变量覆盖）"""

    parser: ParserConfig = Field(default_factory=ParserConfig)
    geometry: GeometryConfig = Field(default_factory=GeometryConfig)
    crs: CRSConfig = Field(default_factory=CRSConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {
        "env_prefix": "GEOLOADER_",
        "env_nested_delimiter": "__",
    }

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> RuntimeConfig:
        """从YAML文件加载配置"""
        path = Path(yaml_path)
        if not path.exists():
            return cls()

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        import_opts = data.get("import_options", {})

        crs_data = cls._extract(import_opts, "crs")
        extra = import_opts.get("crs", {}).get("extra_systems", [])
        if extra:
            crs_data["extra_systems"] = [ExtraSystemConfig(**item) for item in extra]

        config = cls(
            parser=ParserConfig(**cls._extract(import_opts, "parser")),
            geometry=GeometryConfig(**cls._extract(import_opts, "geometry")),
            crs=CRSConfig(**crs_data),
            diagnostics=DiagnosticsConfig(**cls._extract(import_opts, "diagnostics")),
            logging=LoggingConfig(**cls._extract(import_opts, "logging")),
        )

        config._resolve_paths(base_dir=path.parent)
        return config

    @staticmethod
    def _extract(data: dict[str, Any], key: str) -> dict[str, Any]:
        """提取并展平配置"""
        section = data.get(key) or {}
        result = {}
        for k, v in section.items():
            if isinstance(v, dict) and "default" in v:
                result[k] = v["default"]
            elif not isinstance(v, (dict, list)):
                result[k] = v
        return result

    def _resolve_paths(self, base_dir: Path) -> None:
        """解析相对路径配置为绝对路径（基于配置文件所在目录）"""
        if self.crs.catalog_path:
            catalog = Path(self.crs.catalog_path)
            if not catalog.is_absolute():
                self.crs.catalog_path = str((base_dir / catalog).resolve())


# 全局配置实例
_config: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """获取全局配置（惰性加载）"""
    global _config
    if _config is None:
        _config = RuntimeConfig.from_yaml(DEFAULT_CONFIG_PATH)
    return _config


def reload_config(yaml_path: str | Path | None = None) -> RuntimeConfig:
    """重新加载配置"""
    global _config
    path = yaml_path or DEFAULT_CONFIG_PATH
    _config = RuntimeConfig.from_yaml(path)
    return _config
