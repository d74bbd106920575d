"""
DXF 导入器 - 编排各阶段执行

职责：
1. 按顺序执行 解析 → 图块展开 → 几何转换 → 坐标系识别 → 坐标转换 → 范围计算
2. 通过回调报告进度
3. 汇总统计与诊断，生成导入结果
4. 坐标转换按要素失败关闭：任一点转换失败即丢弃该要素并记 TRANSFORM_FAILED
5. 启用 SIA 2014 时校验文件头与图层名，并为要素附加 sia 属性

测试要点：
- test_import_point: 端到端最小文件
- test_import_lv95_transform: LV95 → WGS84
- test_import_circular_blocks: 循环引用不影响其余要素
- test_progress_tracking: 进度回调
- test_sia_layer_properties: SIA 图层名解析为要素属性
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..cad import BlockExpander, DocumentParser, GeometryConverter, SiaProcessor, calculate_bounds
from ..config import RuntimeConfig, get_config
from ..crs import CoordinateSystemDetector, CoordinateSystemManager
from ..diagnostics import DiagnosticsReporter
from ..interfaces import CoordinateSystemError, GeoLoaderError, IDiagnosticsSink, IFeatureSink, IFileSource
from ..models import (
    Bounds,
    DiagnosticCode,
    DxfDocument,
    Entity,
    Feature,
    ImportResult,
    ImportStats,
    PersistResult,
    SiaHeader,
)
from .sinks import LocalFileSource
from .stages import IMPORT_STAGES, PipelineStage, ProgressCallback, StageEnum

logger = logging.getLogger(__name__)


@dataclass
class _ImportContext:
    """单次导入的中间数据"""
    content: str
    reporter: DiagnosticsReporter
    requested_crs: str | None = None
    document: DxfDocument | None = None
    entities: list[Entity] = field(default_factory=list)
    features: list[Feature] = field(default_factory=list)
    raw_bounds: Bounds | None = None
    bounds: Bounds | None = None
    detected_crs: str | None = None
    source_crs: str | None = None
    target_crs: str | None = None
    stats: ImportStats = field(default_factory=ImportStats)
    sia: SiaProcessor | None = None
    sia_header: SiaHeader | None = None


class DxfImporter:
    """DXF 导入器"""

    def __init__(
        self,
        config: RuntimeConfig | None = None,
        crs_manager: CoordinateSystemManager | None = None,
        diagnostics_sinks: list[IDiagnosticsSink] | None = None,
        progress_callback: ProgressCallback | None = None,
    ):
        self.config = config or get_config()
        self.crs_manager = crs_manager or CoordinateSystemManager(self.config.crs)
        self.detector = CoordinateSystemDetector(self.crs_manager)
        self.diagnostics_sinks = list(diagnostics_sinks or [])
        self.progress_callback = progress_callback

    # === 对外接口 ===

    def import_content(self, content: str, source_crs: str | None = None) -> ImportResult:
        """
        导入 DXF 文本

        Args:
            content: DXF 文本
            source_crs: 显式源坐标系（优先于配置与自动识别）

        Raises:
            DxfParseError: 空输入/结构性错误
            CoordinateSystemError: 坐标系管理器初始化或自检失败，或源/目标坐标系未注册
        """
        diag_cfg = self.config.diagnostics
        context = _ImportContext(
            content=content,
            reporter=DiagnosticsReporter(
                max_records=diag_cfg.max_records,
                min_severity=diag_cfg.min_severity,
                log_records=diag_cfg.log_records,
                sinks=self.diagnostics_sinks,
            ),
            requested_crs=source_crs or self.config.crs.source_system,
        )

        for stage in IMPORT_STAGES:
            self._execute_stage(stage, context)

        context.stats.converted = len(context.features)
        return ImportResult(
            features=context.features,
            bounds=context.bounds,
            raw_bounds=context.raw_bounds,
            detected_crs=context.detected_crs,
            source_crs=context.source_crs,
            target_crs=context.target_crs,
            diagnostics=context.reporter.records,
            stats=context.stats,
            sia_header=context.sia_header,
        )

    def import_file(
        self,
        path: str | Path,
        file_source: IFileSource | None = None,
        source_crs: str | None = None,
    ) -> ImportResult:
        """读取并导入 DXF 文件"""
        source = file_source or LocalFileSource(self.config.parser.encoding)
        logger.info(f"导入文件: {path}")
        return self.import_content(source.read_text(Path(path)), source_crs=source_crs)

    def import_and_store(
        self,
        path: str | Path,
        sink: IFeatureSink,
        file_source: IFileSource | None = None,
        source_crs: str | None = None,
    ) -> PersistResult:
        """导入文件并交给持久化接口"""
        result = self.import_file(path, file_source=file_source, source_crs=source_crs)
        return sink.store(result)

    # === 阶段编排 ===

    def _execute_stage(self, stage: PipelineStage, context: _ImportContext) -> None:
        """执行单个阶段"""
        logger.info(f"开始阶段: {stage.name}")
        self._report_progress(stage.name, stage.progress_start, f"开始阶段: {stage.name}")

        try:
            if stage.name == StageEnum.PARSE_STRUCTURE.value:
                self._stage_parse(context)

            elif stage.name == StageEnum.EXPAND_BLOCKS.value:
                self._stage_expand(context)

            elif stage.name == StageEnum.CONVERT_GEOMETRY.value:
                self._stage_convert(context)

            elif stage.name == StageEnum.DETECT_CRS.value:
                self._stage_detect_crs(context)

            elif stage.name == StageEnum.TRANSFORM_COORDINATES.value:
                self._stage_transform(context)

            elif stage.name == StageEnum.CALCULATE_BOUNDS.value:
                self._stage_bounds(context)

        except GeoLoaderError as e:
            logger.error(f"阶段失败 {stage.name}: [{e.code}] {e.message}")
            raise

        logger.info(f"完成阶段: {stage.name}")
        self._report_progress(stage.name, stage.progress_end, f"完成阶段: {stage.name}")

    def _report_progress(self, stage: str, percent: int, message: str) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(stage, percent, message)
        except Exception as e:
            logger.warning(f"进度回调失败: {e}")

    def _stage_parse(self, context: _ImportContext) -> None:
        """结构解析"""
        document = DocumentParser(context.reporter).parse(context.content)
        context.document = document
        context.stats.total_entities = len(document.entities)
        context.stats.layers = len(document.layers)
        context.stats.blocks = len(document.blocks)

        if self.config.parser.sia_enabled:
            context.sia = SiaProcessor(context.reporter)
            context.sia_header = context.sia.process_header(document.header)
            # 未声明 SIA 文件头的图纸不校验图层名
            if context.sia_header is not None:
                context.sia.validate_layers(document.layers, context.sia_header)

    def _stage_expand(self, context: _ImportContext) -> None:
        """图块展开 + 可见性过滤"""
        document = context.document
        expander = BlockExpander(
            context.reporter,
            keep_insert_markers=self.config.geometry.keep_insert_markers,
        )
        expanded = expander.expand(document)
        context.stats.expanded_entities = expander.stats.expanded
        context.stats.failed += expander.stats.failed

        parser_cfg = self.config.parser
        kept: list[Entity] = []
        for entity in expanded:
            layer = document.get_layer(entity.layer)
            if parser_cfg.skip_invisible_entities and not entity.visible:
                context.stats.skipped += 1
            elif parser_cfg.skip_frozen_layers and layer.frozen:
                context.stats.skipped += 1
            elif parser_cfg.skip_off_layers and layer.off:
                context.stats.skipped += 1
            else:
                kept.append(entity)
        context.entities = kept

    def _stage_convert(self, context: _ImportContext) -> None:
        """几何转换"""
        converter = GeometryConverter(
            context.reporter,
            layers=context.document.layers,
            ray_length=self.config.geometry.ray_length,
        )
        context.features = converter.convert_all(context.entities)
        context.stats.failed += converter.failed
        context.raw_bounds = calculate_bounds(context.features)

        if context.sia is not None:
            for feature in context.features:
                metadata = context.sia.layer_properties(feature.properties.get("layer", "0"))
                if metadata:
                    feature.properties["sia"] = metadata

    def _stage_detect_crs(self, context: _ImportContext) -> None:
        """坐标系识别"""
        if context.requested_crs:
            context.source_crs = context.requested_crs
            logger.info(f"使用指定源坐标系: {context.source_crs}")
            return
        if not self.config.crs.auto_detect:
            return

        result = self.detector.detect(context.raw_bounds, context.document.header)
        if not result.detected:
            context.reporter.info(
                DiagnosticCode.CRS_NOT_DETECTED,
                f"未能识别源坐标系: {result.reason}",
                {"bounds": context.raw_bounds.model_dump() if context.raw_bounds else None},
            )
            return

        context.detected_crs = result.system
        context.source_crs = result.system
        if result.is_low_confidence:
            context.reporter.warning(
                DiagnosticCode.CRS_LOW_CONFIDENCE,
                f"源坐标系识别置信度低: {result.system}（{result.reason}）",
                {"system": result.system, "confidence": result.confidence, "source": result.source},
            )

    def _stage_transform(self, context: _ImportContext) -> None:
        """坐标转换（按要素失败关闭）"""
        crs_cfg = self.config.crs
        source = context.source_crs
        if source is None:
            return
        if not crs_cfg.transform_to_target or source == crs_cfg.target_system:
            context.target_crs = source
            return

        target = crs_cfg.target_system
        self.crs_manager.initialize()
        for code in (source, target):
            if self.crs_manager.get_system(code) is None:
                raise CoordinateSystemError(
                    f"坐标系不可用: {code}",
                    {"source": source, "target": target, "registered": self.crs_manager.systems},
                )

        def convert(position: list[float]) -> list[float]:
            result = self.crs_manager.transform(position, source, target)
            return [result.x, result.y]

        transformed: list[Feature] = []
        for feature in context.features:
            try:
                geometry = feature.geometry.map_positions(convert)
            except GeoLoaderError as e:
                context.stats.failed += 1
                context.reporter.warning(
                    DiagnosticCode.TRANSFORM_FAILED,
                    f"要素 {feature.properties.get('id') or '?'} 坐标转换失败: {e.message}",
                    {"id": feature.properties.get("id"), "source": source, "target": target, **e.details},
                )
                continue
            transformed.append(feature.model_copy(update={"geometry": geometry}))

        context.features = transformed
        context.target_crs = target
        logger.info(f"坐标转换完成: {source} -> {target}，要素 {len(transformed)} 个")

    def _stage_bounds(self, context: _ImportContext) -> None:
        """范围计算"""
        context.bounds = calculate_bounds(context.features)


def import_dxf(content: str, config: RuntimeConfig | None = None, source_crs: str | None = None) -> ImportResult:
    """便捷函数：导入 DXF 文本"""
    return DxfImporter(config).import_content(content, source_crs=source_crs)
