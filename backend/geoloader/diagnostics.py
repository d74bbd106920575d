"""
诊断收集器 - 贯穿各阶段的非致命问题记录

职责：
- 按严重级别收集诊断记录（error/warning/info）
- 按代码查询与汇总
- 同步镜像到 logging，并推送给外部可观测性接口

约束：
- 任何方法都不抛异常（外部接口失败仅记日志）
- 超过 max_records 的记录只计数不保存
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from .interfaces import IDiagnosticsSink
from .models import Diagnostic, Severity

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.INFO: logging.INFO,
}


class DiagnosticsReporter:
    """诊断收集器"""

    def __init__(
        self,
        max_records: int = 1000,
        min_severity: Severity | str = Severity.INFO,
        log_records: bool = True,
        sinks: list[IDiagnosticsSink] | None = None,
    ):
        self.max_records = max_records
        self.min_severity = Severity(min_severity)
        self.log_records = log_records
        self.sinks: list[IDiagnosticsSink] = list(sinks or [])
        self._records: list[Diagnostic] = []
        self.dropped = 0

    # === 记录 ===

    def report(
        self,
        severity: Severity,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> Diagnostic | None:
        """记录一条诊断，被级别过滤时返回None"""
        if severity.rank < self.min_severity.rank:
            return None

        diagnostic = Diagnostic(
            severity=severity,
            code=str(getattr(code, "value", code)),
            message=message,
            context=context or {},
        )

        if len(self._records) < self.max_records:
            self._records.append(diagnostic)
        else:
            self.dropped += 1

        if self.log_records:
            logger.log(_LOG_LEVELS[severity], f"{diagnostic.code}: {message}")

        for sink in self.sinks:
            try:
                sink.emit(diagnostic)
            except Exception as e:
                logger.warning(f"诊断推送失败 ({type(sink).__name__}): {e}")

        return diagnostic

    def error(self, code: str, message: str, context: dict[str, Any] | None = None) -> Diagnostic | None:
        return self.report(Severity.ERROR, code, message, context)

    def warning(self, code: str, message: str, context: dict[str, Any] | None = None) -> Diagnostic | None:
        return self.report(Severity.WARNING, code, message, context)

    def info(self, code: str, message: str, context: dict[str, Any] | None = None) -> Diagnostic | None:
        return self.report(Severity.INFO, code, message, context)

    # === 查询 ===

    @property
    def records(self) -> list[Diagnostic]:
        return list(self._records)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self._records if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self._records if d.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self._records)

    def by_code(self, code: str) -> list[Diagnostic]:
        code = str(getattr(code, "value", code))
        return [d for d in self._records if d.code == code]

    def count(self, code: str) -> int:
        return len(self.by_code(code))

    def summary(self) -> dict[str, Any]:
        """按级别与代码汇总"""
        return {
            "total": len(self._records),
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "infos": sum(1 for d in self._records if d.severity == Severity.INFO),
            "dropped": self.dropped,
            "by_code": dict(Counter(d.code for d in self._records)),
        }

    def clear(self) -> None:
        self._records.clear()
        self.dropped = 0
