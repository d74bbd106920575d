"""
数据模型层 - 定义系统核心数据结构

所有模块通过这些模型交互，实现解耦：
- Vector3/Bounds: 基础几何
- Entity: DXF 实体标签联合
- DxfDocument: 文档结构（图层/图块/实体）
- Feature/ImportResult: 输出要素与导入结果
- Diagnostic: 诊断记录
- SiaHeader/SiaLayer: SIA 2014 文件头与图层名结构
"""

from .diagnostic import Diagnostic, DiagnosticCode, Severity
from .document import Block, DxfDocument, DxfHeader, Layer
from .entities import (
    SUPPORTED_ENTITY_TYPES,
    Z_AXIS,
    ArcEntity,
    CircleEntity,
    DimensionEntity,
    EllipseEntity,
    Entity,
    EntityBase,
    FaceEntity,
    HatchEntity,
    InsertEntity,
    LeaderEntity,
    LineEntity,
    PointEntity,
    PolylineEntity,
    RayEntity,
    SplineEntity,
    TextEntity,
)
from .feature import Feature, Geometry, ImportResult, ImportStats, PersistResult
from .geometry import Bounds, Vector3
from .sia import SIA_HEADER_FIELDS, SIA_PREFIXES, SiaHeader, SiaLayer, SiaLayerKey

__all__ = [
    "Vector3",
    "Bounds",
    "Z_AXIS",
    "Entity",
    "EntityBase",
    "SUPPORTED_ENTITY_TYPES",
    "PointEntity",
    "LineEntity",
    "PolylineEntity",
    "CircleEntity",
    "ArcEntity",
    "EllipseEntity",
    "SplineEntity",
    "InsertEntity",
    "TextEntity",
    "HatchEntity",
    "FaceEntity",
    "DimensionEntity",
    "LeaderEntity",
    "RayEntity",
    "Layer",
    "Block",
    "DxfHeader",
    "DxfDocument",
    "Geometry",
    "Feature",
    "ImportStats",
    "ImportResult",
    "PersistResult",
    "Diagnostic",
    "DiagnosticCode",
    "Severity",
    "SiaHeader",
    "SiaLayer",
    "SiaLayerKey",
    "SIA_HEADER_FIELDS",
    "SIA_PREFIXES",
]
