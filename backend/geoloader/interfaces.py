"""
模块接口契约 - 定义外部协作方接口与异常

设计原则：
1. 导入核心只产出 Feature/诊断，不关心文件获取与持久化
2. 文件获取、持久化、可观测性由外部实现，通过接口注入
3. 便于单元测试和mock替换

使用方式：
    from geoloader.interfaces import IFeatureSink

    class PostgisSink(IFeatureSink):
        def store(self, result: ImportResult) -> PersistResult:
            ...
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import Diagnostic, ImportResult, PersistResult


# ============================================================================
# 外部协作方接口
# ============================================================================

class IFileSource(ABC):
    """文件获取接口 - 提供DXF原始文本"""

    @abstractmethod
    def read_text(self, path: Path) -> str:
        """
        读取DXF文本

        Args:
            path: 文件路径（或存储键）

        Returns:
            UTF-8 解码后的文本内容
        """
        ...


class IFeatureSink(ABC):
    """持久化接口 - 接收要素、检测到的坐标系与范围"""

    @abstractmethod
    def store(self, result: ImportResult) -> PersistResult:
        """
        保存导入结果

        Args:
            result: 导入结果（要素 + 范围 + 坐标系）

        Returns:
            导入/失败计数
        """
        ...


class IDiagnosticsSink(ABC):
    """可观测性接口 - 接收诊断记录"""

    @abstractmethod
    def emit(self, diagnostic: Diagnostic) -> None:
        """推送单条诊断记录"""
        ...


# ============================================================================
# 异常定义
# ============================================================================

class GeoLoaderError(Exception):
    """基础异常"""

    def __init__(self, message: str, code: str = "GEOLOADER_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class DxfParseError(GeoLoaderError):
    """DXF 结构性解析错误（致命）"""

    def __init__(self, message: str, code: str = "DXF_PARSE_ERROR", details: dict[str, Any] | None = None):
        super().__init__(message, code, details)


class CoordinateSystemError(GeoLoaderError):
    """坐标系注册/初始化/自检错误"""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, "COORDINATE_SYSTEM_ERROR", details)


class InvalidCoordinateError(GeoLoaderError):
    """坐标值非法（NaN/Inf）"""

    def __init__(self, message: str, coordinates: Any, details: dict[str, Any] | None = None):
        super().__init__(message, "INVALID_COORDINATE_ERROR", {"coordinates": coordinates, **(details or {})})
        self.coordinates = coordinates


class CoordinateTransformationError(GeoLoaderError):
    """坐标转换失败，携带点位与源/目标坐标系"""

    def __init__(
        self,
        message: str,
        coordinates: Any,
        source_system: str,
        target_system: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message,
            "COORDINATE_TRANSFORMATION_ERROR",
            {
                "coordinates": coordinates,
                "source_system": source_system,
                "target_system": target_system,
                **(details or {}),
            },
        )
        self.coordinates = coordinates
        self.source_system = source_system
        self.target_system = target_system
