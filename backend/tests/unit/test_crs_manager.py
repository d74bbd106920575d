"""
坐标系管理器与转换缓存单元测试

每个模块完成后必须运行：pytest tests/unit/test_crs_manager.py -v
"""

import math
from concurrent.futures import ThreadPoolExecutor

import pytest

from geoloader.config import CoordinateSystemDefinition, CrsCatalog, VerificationPoint, load_crs_catalog
from geoloader.config.runtime_config import CRSConfig, ExtraSystemConfig
from geoloader.crs import LV03, LV95, WGS84, CoordinateSystemManager, TransformCache
from geoloader.interfaces import (
    CoordinateSystemError,
    CoordinateTransformationError,
    InvalidCoordinateError,
)
from geoloader.models import Vector3

# 伯尔尼旧天文台（LV95/LV03 原点）在 WGS84 下的位置
BERN_LON = 7.4396
BERN_LAT = 46.9524


class TestInitialize:
    """初始化与自检测试"""

    def test_initialize_idempotent(self):
        """测试重复初始化"""
        manager = CoordinateSystemManager()
        manager.initialize()
        manager.initialize()
        assert manager.initialized
        assert set(manager.systems) == {WGS84, LV95, LV03}

    def test_lazy_initialize(self):
        """测试首次转换时自动初始化"""
        manager = CoordinateSystemManager()
        assert not manager.initialized
        manager.transform((0.0, 0.0), WGS84, WGS84)
        assert manager.initialized

    def test_reset(self):
        """测试重置回到未初始化"""
        manager = CoordinateSystemManager()
        manager.initialize()
        manager.reset()
        assert not manager.initialized
        assert len(manager.cache) == 0

    def test_verification_failure(self):
        """测试自检失败保持未初始化"""
        catalog = load_crs_catalog()
        broken = CrsCatalog(
            systems=catalog.systems,
            verification_points=[
                VerificationPoint(source=LV95, point=(2645021.0, 1249991.0), expected=(0.0, 0.0)),
            ],
        )
        manager = CoordinateSystemManager(catalog=broken)
        with pytest.raises(CoordinateSystemError) as exc_info:
            manager.initialize()
        assert not manager.initialized
        assert exc_info.value.details["expected"] == [0.0, 0.0]

    def test_concurrent_initialize(self, monkeypatch):
        """测试多线程首次使用只初始化一次"""
        manager = CoordinateSystemManager()
        registered = []
        register = manager._register

        def counting_register(definition):
            registered.append(definition.code)
            register(definition)

        monkeypatch.setattr(manager, "_register", counting_register)
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(
                lambda _: manager.transform((2600000.0, 1200000.0), LV95, WGS84),
                range(16),
            ))

        assert manager.initialized
        assert sorted(registered) == sorted([WGS84, LV95, LV03])
        assert all(r == results[0] for r in results)

    def test_invalid_definition(self):
        """测试非法 proj4 定义"""
        catalog = CrsCatalog(systems=[CoordinateSystemDefinition(code="BAD:1", proj4def="+proj=nonsense")])
        manager = CoordinateSystemManager(catalog=catalog)
        with pytest.raises(CoordinateSystemError):
            manager.initialize()
        assert not manager.initialized

    def test_extra_systems_from_config(self):
        """测试配置中的附加坐标系"""
        config = CRSConfig(extra_systems=[
            ExtraSystemConfig(code="LOCAL:UTM32", proj4def="+proj=utm +zone=32 +datum=WGS84 +units=m +no_defs"),
        ])
        manager = CoordinateSystemManager(config)
        assert "LOCAL:UTM32" in manager.systems
        result = manager.transform((500000.0, 0.0), "LOCAL:UTM32", WGS84)
        assert result.x == pytest.approx(9.0)
        assert result.y == pytest.approx(0.0, abs=1e-9)


class TestTransform:
    """点位转换测试"""

    def test_transform_lv95_origin(self, crs_manager):
        """测试 LV95 原点到 WGS84"""
        result = crs_manager.transform((2600000.0, 1200000.0), LV95, WGS84)
        assert result.x == pytest.approx(BERN_LON, abs=1e-4)
        assert result.y == pytest.approx(BERN_LAT, abs=1e-4)

    def test_transform_lv03_origin(self, crs_manager):
        """测试 LV03 原点到 WGS84"""
        result = crs_manager.transform(Vector3(x=600000.0, y=200000.0), LV03, WGS84)
        assert result.x == pytest.approx(BERN_LON, abs=1e-4)
        assert result.y == pytest.approx(BERN_LAT, abs=1e-4)

    def test_transform_inverse(self, crs_manager):
        """测试 WGS84 到 LV95"""
        result = crs_manager.transform((BERN_LON, BERN_LAT), WGS84, LV95)
        assert result.x == pytest.approx(2600000.0, abs=10.0)
        assert result.y == pytest.approx(1200000.0, abs=10.0)

    def test_datum_shift_as_extra_system(self):
        """测试七参数基准转换需作为附加坐标系登记"""
        config = CRSConfig(extra_systems=[
            ExtraSystemConfig(
                code="CH1903+:TOWGS84",
                proj4def=(
                    "+proj=somerc +lat_0=46.95240555555556 +lon_0=7.439583333333333 +k_0=1 "
                    "+x_0=2600000 +y_0=1200000 +ellps=bessel "
                    "+towgs84=674.374,15.056,405.346,0,0,0,0 +units=m +no_defs"
                ),
            ),
        ])
        manager = CoordinateSystemManager(config)
        shifted = manager.transform((2600000.0, 1200000.0), "CH1903+:TOWGS84", WGS84)
        assert shifted.x == pytest.approx(7.43864, abs=1e-4)
        assert shifted.y == pytest.approx(46.95108, abs=1e-4)

        builtin = manager.transform((2600000.0, 1200000.0), LV95, WGS84)
        assert builtin.x == pytest.approx(BERN_LON, abs=1e-4)
        assert builtin.y == pytest.approx(BERN_LAT, abs=1e-4)

    def test_identity_for_every_system(self, crs_manager):
        """测试每个已注册坐标系的同系转换都原样返回"""
        for code in crs_manager.systems:
            result = crs_manager.transform((12.5, 34.25, 7.0), code, code)
            assert (result.x, result.y, result.z) == (12.5, 34.25, 7.0)

    def test_repeat_transform_identical(self):
        """测试同一点两次转换结果完全一致"""
        manager = CoordinateSystemManager()
        first = manager.transform((2645021.0, 1249991.0), LV95, WGS84)
        second = manager.transform((2645021.0, 1249991.0), LV95, WGS84)
        assert first == second
        manager.cache.clear()
        third = manager.transform((2645021.0, 1249991.0), LV95, WGS84)
        assert third == first

    def test_z_passthrough(self, crs_manager):
        """测试高程原样保留"""
        result = crs_manager.transform((2600000.0, 1200000.0, 540.0), LV95, WGS84)
        assert result.z == 540.0

    def test_transform_identity(self, crs_manager):
        """测试同系短路"""
        result = crs_manager.transform((2600000.0, 1200000.0), LV95, LV95)
        assert (result.x, result.y) == (2600000.0, 1200000.0)

    @pytest.mark.parametrize("point", [(math.nan, 0.0), (0.0, math.inf), (1.0, 1.0, -math.inf)])
    def test_transform_non_finite(self, crs_manager, point):
        """测试非有限输入"""
        with pytest.raises(InvalidCoordinateError):
            crs_manager.transform(point, LV95, WGS84)

    def test_unknown_system(self, crs_manager):
        """测试未注册坐标系"""
        with pytest.raises(CoordinateTransformationError) as exc_info:
            crs_manager.transform((1.0, 1.0), "EPSG:99999", WGS84)
        assert exc_info.value.source_system == "EPSG:99999"

    def test_transform_many(self, crs_manager):
        """测试批量转换"""
        results = crs_manager.transform_many(
            [(2600000.0, 1200000.0), (2645021.0, 1249991.0)], LV95, WGS84
        )
        assert len(results) == 2
        assert results[1].x == pytest.approx(8.0, abs=0.5)
        assert results[1].y == pytest.approx(47.4, abs=0.5)

    def test_validate_bounds(self, crs_manager):
        """测试有效范围校验"""
        assert crs_manager.validate_bounds((2600000.0, 1200000.0), LV95)
        assert not crs_manager.validate_bounds((600000.0, 200000.0), LV95)
        assert not crs_manager.validate_bounds((0.0, 0.0), "EPSG:99999")


class TestTransformCache:
    """转换缓存测试"""

    def test_cache_hit(self):
        """测试重复转换命中缓存"""
        manager = CoordinateSystemManager()
        manager.transform((2600000.0, 1200000.0), LV95, WGS84)
        manager.transform((2600000.0, 1200000.0, 10.0), LV95, WGS84)
        assert len(manager.cache) == 1
        assert manager.cache.hits == 1

    def test_evict_oldest_half(self):
        """测试满容量时淘汰最旧的一半"""
        cache = TransformCache(max_size=4)
        for i in range(4):
            cache.set((LV95, WGS84, float(i), 0.0), (float(i), 0.0))
        cache.set((LV95, WGS84, 99.0, 0.0), (99.0, 0.0))

        assert len(cache) == 3
        assert (LV95, WGS84, 0.0, 0.0) not in cache
        assert (LV95, WGS84, 1.0, 0.0) not in cache
        assert (LV95, WGS84, 3.0, 0.0) in cache
        assert cache.stats()["evictions"] == 2

    def test_overwrite_existing_key(self):
        """测试已存在的键覆盖写入不触发淘汰"""
        cache = TransformCache(max_size=2)
        key = (LV95, WGS84, 1.0, 1.0)
        cache.set(key, (1.0, 1.0))
        cache.set((LV95, WGS84, 2.0, 2.0), (2.0, 2.0))
        cache.set(key, (5.0, 5.0))
        assert cache.get(key) == (5.0, 5.0)
        assert cache.evictions == 0

    def test_invalid_size(self):
        """测试容量必须为正数"""
        with pytest.raises(ValueError):
            TransformCache(max_size=0)
