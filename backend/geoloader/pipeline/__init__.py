"""
流水线模块 - DXF 导入编排

子模块：
- stages: 导入各阶段定义
- importer: 导入器（阶段执行、进度、统计）
- sinks: 文件读取/持久化/诊断推送的参考实现
"""

from .importer import DxfImporter, import_dxf
from .sinks import LocalFileSource, MemoryDiagnosticsSink, MemoryFeatureSink
from .stages import IMPORT_STAGES, PipelineStage, StageEnum

__all__ = [
    "PipelineStage",
    "StageEnum",
    "IMPORT_STAGES",
    "DxfImporter",
    "import_dxf",
    "LocalFileSource",
    "MemoryFeatureSink",
    "MemoryDiagnosticsSink",
]
