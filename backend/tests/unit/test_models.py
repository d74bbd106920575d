"""
数据模型单元测试

每个模块完成后必须运行：pytest tests/unit/test_models.py -v
"""

import math

import pytest
from pydantic import TypeAdapter, ValidationError

from geoloader.models import (
    Bounds,
    DxfDocument,
    Entity,
    Feature,
    Geometry,
    ImportResult,
    Layer,
    LineEntity,
    Severity,
    Vector3,
)


class TestVector3:
    """三维点测试"""

    def test_default_z(self):
        """测试 z 缺省为0"""
        assert Vector3(x=1, y=2).z == 0.0

    def test_reject_non_finite(self):
        """测试拒绝 NaN/Inf"""
        with pytest.raises(ValidationError):
            Vector3(x=math.nan, y=0)
        with pytest.raises(ValidationError):
            Vector3(x=0, y=math.inf)

    def test_frozen(self):
        """测试不可变"""
        p = Vector3(x=1, y=2)
        with pytest.raises(ValidationError):
            p.x = 5


class TestBounds:
    """范围测试"""

    def test_width_height(self):
        """测试宽高计算"""
        b = Bounds(min_x=0, min_y=0, max_x=841, max_y=594)
        assert b.width == 841
        assert b.height == 594

    def test_from_points(self):
        """测试由点集计算范围"""
        b = Bounds.from_points([(1, 5), (-2, 3), (4, -1)])
        assert (b.min_x, b.min_y, b.max_x, b.max_y) == (-2, -1, 4, 5)
        assert b.contains(0, 0)
        assert Bounds.from_points([]) is None


class TestEntityUnion:
    """实体标签联合测试"""

    def test_discriminator(self):
        """测试按 type 字段选择实体模型"""
        adapter = TypeAdapter(Entity)
        entity = adapter.validate_python({
            "type": "LINE",
            "start": {"x": 0, "y": 0},
            "end": {"x": 1, "y": 1},
        })
        assert isinstance(entity, LineEntity)

    def test_unknown_type(self):
        """测试未知类型校验失败"""
        with pytest.raises(ValidationError):
            TypeAdapter(Entity).validate_python({"type": "BOGUS"})

    def test_copy_keeps_original(self):
        """测试实体不可变，复制产生新对象"""
        line = LineEntity(start=Vector3(x=0, y=0), end=Vector3(x=1, y=1))
        moved = line.model_copy(update={"layer": "WALLS"})
        assert line.layer == "0"
        assert moved.layer == "WALLS"


class TestDocument:
    """文档模型测试"""

    def test_get_layer_fallback(self):
        """测试未知图层回退到图层0"""
        document = DxfDocument(layers={"0": Layer(name="0", color=7)})
        assert document.get_layer("NOPE").color == 7

    def test_ensure_default_layer(self):
        """测试补齐图层0"""
        document = DxfDocument()
        document.ensure_default_layer()
        assert document.layers["0"].is_renderable


class TestGeometry:
    """几何与要素测试"""

    def test_iter_positions(self):
        """测试遍历所有坐标"""
        polygon = Geometry(type="MultiPolygon", coordinates=[[[[0, 0], [1, 0], [0, 1], [0, 0]]]])
        assert len(list(polygon.iter_positions())) == 4

    def test_map_positions(self):
        """测试逐点映射保持结构"""
        line = Geometry(type="LineString", coordinates=[[0, 0], [1, 2]])
        moved = line.map_positions(lambda p: [p[0] + 10, p[1]])
        assert moved.coordinates == [[10, 0], [11, 2]]
        assert line.coordinates == [[0, 0], [1, 2]]

    def test_feature_collection(self):
        """测试导出 GeoJSON"""
        feature = Feature(geometry=Geometry(type="Point", coordinates=[1, 2]), properties={"type": "POINT"})
        collection = ImportResult(features=[feature]).to_feature_collection()
        assert collection["type"] == "FeatureCollection"
        assert collection["features"][0] == {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [1, 2]},
            "properties": {"type": "POINT"},
        }

    def test_severity_rank(self):
        """测试严重级别排序"""
        assert Severity.INFO.rank < Severity.WARNING.rank < Severity.ERROR.rank
