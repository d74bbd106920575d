"""
配置加载单元测试

每个模块完成后必须运行：pytest tests/unit/test_config.py -v
"""

from pathlib import Path

import pytest

from geoloader.config import (
    CoordinateSystemDefinition,
    CrsCatalogLoader,
    RuntimeConfig,
    load_crs_catalog,
    reload_config,
)


class TestCrsCatalog:
    """坐标系目录测试"""

    def test_load_catalog(self):
        """测试加载内置目录"""
        catalog = load_crs_catalog()
        assert catalog.codes == ["EPSG:4326", "EPSG:2056", "EPSG:21781"]
        assert len(catalog.verification_points) == 2

    def test_get_system(self):
        """测试获取坐标系定义"""
        lv95 = load_crs_catalog().get_system("EPSG:2056")
        assert lv95 is not None
        assert "+proj=somerc" in lv95.proj4def
        assert lv95.bounds == (2485000.0, 1075000.0, 2835000.0, 1295000.0)
        assert load_crs_catalog().get_system("EPSG:0") is None

    def test_catalog_cached(self):
        """测试目录加载结果缓存"""
        assert load_crs_catalog() is load_crs_catalog()

    def test_missing_catalog(self, temp_dir: Path):
        """测试目录文件不存在"""
        with pytest.raises(FileNotFoundError):
            CrsCatalogLoader.load(temp_dir / "missing.yaml")

    def test_bounds_from_dict(self):
        """测试范围可写成字典"""
        definition = CoordinateSystemDefinition(
            code="X",
            proj4def="+proj=longlat +datum=WGS84",
            bounds={"min_x": 0, "min_y": 1, "max_x": 2, "max_y": 3},
        )
        assert definition.bounds == (0, 1, 2, 3)


class TestRuntimeConfig:
    """运行期配置测试"""

    def test_default_config(self, runtime_config: RuntimeConfig):
        """测试默认配置"""
        assert runtime_config.crs.target_system == "EPSG:4326"
        assert runtime_config.crs.cache_max_size == 10000
        assert runtime_config.crs.verification_tolerance_deg == 0.5
        assert runtime_config.geometry.ray_length == 1e6
        assert runtime_config.diagnostics.max_records == 1000
        assert runtime_config.parser.skip_frozen_layers

    def test_from_yaml(self, temp_dir: Path):
        """测试从YAML加载（含 default/desc 写法）"""
        path = temp_dir / "runtime.yaml"
        path.write_text(
            "import_options:\n"
            "  geometry:\n"
            "    ray_length: {default: 500.0, desc: 射线长度}\n"
            "  crs:\n"
            "    source_system: EPSG:2056\n"
            "    catalog_path: {default: systems.yaml}\n"
            "    extra_systems:\n"
            "      - code: LOCAL:1\n"
            "        proj4def: +proj=utm +zone=32 +datum=WGS84\n"
            "        bounds: [0, 0, 1, 1]\n"
            "  diagnostics:\n"
            "    min_severity: warning\n",
            encoding="utf-8",
        )
        config = RuntimeConfig.from_yaml(path)

        assert config.geometry.ray_length == 500.0
        assert config.crs.source_system == "EPSG:2056"
        assert config.crs.extra_systems[0].code == "LOCAL:1"
        assert config.crs.extra_systems[0].bounds == [0, 0, 1, 1]
        assert config.diagnostics.min_severity == "warning"
        # 相对路径基于配置文件目录
        assert Path(config.crs.catalog_path) == (temp_dir / "systems.yaml").resolve()

    def test_missing_yaml(self, temp_dir: Path):
        """测试配置文件不存在时使用默认值"""
        config = RuntimeConfig.from_yaml(temp_dir / "missing.yaml")
        assert config.crs.target_system == "EPSG:4326"

    def test_env_override(self, monkeypatch):
        """测试环境变量覆盖"""
        monkeypatch.setenv("GEOLOADER_GEOMETRY__RAY_LENGTH", "250")
        config = RuntimeConfig()
        assert config.geometry.ray_length == 250.0

    def test_reload_config(self, temp_dir: Path, monkeypatch):
        """测试重新加载全局配置"""
        monkeypatch.setattr("geoloader.config.runtime_config._config", None)
        path = temp_dir / "runtime.yaml"
        path.write_text("import_options:\n  logging:\n    log_level: DEBUG\n", encoding="utf-8")
        config = reload_config(path)
        assert config.logging.log_level == "DEBUG"
