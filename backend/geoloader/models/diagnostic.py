"""
诊断模型 - 导入过程中的非致命问题记录
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """严重级别"""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        return {"info": 0, "warning": 1, "error": 2}[self.value]


class DiagnosticCode(str, Enum):
    """诊断代码"""
    # 分词/段扫描
    INVALID_GROUP_CODE = "INVALID_GROUP_CODE"
    MISSING_VALUE = "MISSING_VALUE"
    UNCLOSED_SECTION = "UNCLOSED_SECTION"

    # 实体解码
    UNSUPPORTED_ENTITY = "UNSUPPORTED_ENTITY"
    INVALID_POSITION = "INVALID_POSITION"
    INVALID_VERTEX = "INVALID_VERTEX"
    INSUFFICIENT_VERTICES = "INSUFFICIENT_VERTICES"
    INVALID_RADIUS = "INVALID_RADIUS"
    INVALID_ANGLES = "INVALID_ANGLES"
    INVALID_ELLIPSE_AXIS = "INVALID_ELLIPSE_AXIS"
    INVALID_SPLINE = "INVALID_SPLINE"
    INVALID_INSERT = "INVALID_INSERT"
    INVALID_TEXT = "INVALID_TEXT"
    INVALID_HATCH = "INVALID_HATCH"
    INVALID_HATCH_BOUNDARY = "INVALID_HATCH_BOUNDARY"
    INVALID_DIRECTION = "INVALID_DIRECTION"

    # 图块展开
    DUPLICATE_BLOCK = "DUPLICATE_BLOCK"
    MISSING_BLOCK = "MISSING_BLOCK"
    CIRCULAR_REFERENCE = "CIRCULAR_REFERENCE"

    # 几何转换/坐标转换
    CONVERSION_ERROR = "CONVERSION_ERROR"
    TRANSFORM_FAILED = "TRANSFORM_FAILED"

    # 坐标系识别
    CRS_NOT_DETECTED = "CRS_NOT_DETECTED"
    CRS_LOW_CONFIDENCE = "CRS_LOW_CONFIDENCE"

    # SIA 2014 文件头/图层名
    SIA_MISSING_HEADER_FIELD = "SIA_MISSING_HEADER_FIELD"
    SIA_INVALID_HEADER_VALUE = "SIA_INVALID_HEADER_VALUE"
    SIA_EMPTY_CUSTOM_KEY = "SIA_EMPTY_CUSTOM_KEY"
    SIA_INVALID_LAYER_NAME = "SIA_INVALID_LAYER_NAME"
    SIA_NON_STANDARD_PREFIX = "SIA_NON_STANDARD_PREFIX"
    SIA_UNMAPPED_KEY_VALUE = "SIA_UNMAPPED_KEY_VALUE"


class Diagnostic(BaseModel):
    """单条诊断记录"""
    severity: Severity
    code: str
    message: str
    context: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.severity.value}] {self.code}: {self.message}"
