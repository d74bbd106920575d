"""
协作方参考实现 - 本地文件读取与内存持久化

用于命令行工具与单元测试；生产环境由外部实现接口。
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..interfaces import IDiagnosticsSink, IFeatureSink, IFileSource
from ..models import Diagnostic, ImportResult, PersistResult

logger = logging.getLogger(__name__)


class LocalFileSource(IFileSource):
    """从本地文件系统读取 DXF 文本"""

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def read_text(self, path: Path) -> str:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"DXF文件不存在: {path}")
        # 非法字节替换而不中断，结构错误交给解析器报告
        return path.read_text(encoding=self.encoding, errors="replace")


class MemoryFeatureSink(IFeatureSink):
    """把导入结果保存在内存中"""

    def __init__(self):
        self.results: list[ImportResult] = []

    def store(self, result: ImportResult) -> PersistResult:
        self.results.append(result)
        logger.info(f"保存要素 {len(result.features)} 个（坐标系 {result.target_crs or result.source_crs}）")
        return PersistResult(imported=len(result.features), failed=result.stats.failed)

    @property
    def feature_count(self) -> int:
        return sum(len(r.features) for r in self.results)


class MemoryDiagnosticsSink(IDiagnosticsSink):
    """收集推送的诊断记录"""

    def __init__(self):
        self.diagnostics: list[Diagnostic] = []

    def emit(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)
