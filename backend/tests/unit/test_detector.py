"""
坐标系识别单元测试

每个模块完成后必须运行：pytest tests/unit/test_detector.py -v
"""

import pytest

from geoloader.crs import LV03, LV95, WGS84, CoordinateSystemDetector
from geoloader.models import Bounds, DxfHeader


def bounds(min_x, min_y, max_x, max_y) -> Bounds:
    return Bounds(min_x=min_x, min_y=min_y, max_x=max_x, max_y=max_y)


@pytest.fixture
def detector(crs_manager) -> CoordinateSystemDetector:
    return CoordinateSystemDetector(crs_manager)


class TestDetectByBounds:
    """按范围识别测试"""

    def test_lv95_within_declared(self, detector):
        """测试 LV95 且落在声明范围内"""
        result = detector.detect(bounds(2600000, 1200000, 2600500, 1200500))
        assert result.system == LV95
        assert result.confidence == 0.9
        assert result.source == "bounds"
        assert not result.is_low_confidence

    def test_lv95_outside_declared(self, detector):
        """测试 LV95 量级但超出声明范围"""
        result = detector.detect(bounds(2900000, 1350000, 2900500, 1350500))
        assert result.system == LV95
        assert result.confidence == 0.7

    def test_lv95_without_manager(self):
        """测试无管理器时不做声明范围确认"""
        result = CoordinateSystemDetector().detect(bounds(2900000, 1350000, 2900500, 1350500))
        assert result.confidence == 0.9

    def test_lv03(self, detector):
        """测试 LV03"""
        result = detector.detect(bounds(600000, 200000, 600100, 200100))
        assert result.system == LV03
        assert result.confidence == 0.8

    def test_wgs84(self, detector):
        """测试经纬度范围"""
        result = detector.detect(bounds(7.4, 46.9, 7.5, 47.0))
        assert result.system == WGS84
        assert result.confidence == 0.6

    def test_magnitude_fallback(self, detector):
        """测试量级兜底为低置信度 LV95"""
        result = detector.detect(bounds(100, 100, 2500000, 500))
        assert result.system == LV95
        assert result.source == "magnitude"
        assert result.is_low_confidence


class TestDetectFallback:
    """兜底与未识别测试"""

    def test_header_hint(self, detector):
        """测试 $INSUNITS 提示"""
        result = detector.detect(bounds(1000, 1000, 2000, 2000), DxfHeader(insunits=1))
        assert result.system == LV95
        assert result.confidence == 0.3
        assert result.source == "header"

    def test_not_detected(self, detector):
        """测试局部坐标无法识别"""
        result = detector.detect(bounds(1000, 1000, 2000, 2000), DxfHeader(insunits=6))
        assert not result.detected
        assert result.confidence == 0.0
        assert not result.is_low_confidence

    def test_no_bounds(self, detector):
        """测试没有范围"""
        result = detector.detect(None)
        assert result.system is None
        assert result.source == "none"
