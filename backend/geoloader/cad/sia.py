"""
SIA 2014 处理器 - 读取文件头元数据并校验图层名

职责：
1. 从 HEADER 变量中提取 $OBJFILE…$VERSIA2014 与 $KEYa…$KEYz 自定义键
2. 校验文件头：必填项缺失、DATEFILE 格式（YYYYMMDD）、自定义键无值
3. 解析图层名 _a_…_b_…_c_…：前缀单个小写字母，b 为层级编码（如 C0201）
4. 文件声明了 SIA 文件头时校验图层名，并对照自定义键的允许值

测试要点：
- test_extract_header: 必填项与自定义键
- test_missing_header_fields: 缺失项记为错误
- test_parse_layer_name: 标准前缀与自由字段
- test_invalid_element_code: 构件编码格式
- test_unmapped_key_value: 图层内容不在自定义键允许值内
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from string import ascii_lowercase
from typing import Any

from ..diagnostics import DiagnosticsReporter
from ..models import (
    SIA_HEADER_FIELDS,
    SIA_PREFIXES,
    DiagnosticCode,
    DxfHeader,
    SiaHeader,
    SiaLayer,
    SiaLayerKey,
)

logger = logging.getLogger(__name__)

MANDATORY_PREFIXES = ("a", "b", "c")

# AutoCAD 系统图层不参与命名校验
SYSTEM_LAYERS = frozenset({"0", "DEFPOINTS"})

_PREFIX_PATTERN = re.compile(r"^[a-z]$")
_HIERARCHICAL_CODE_PATTERN = re.compile(r"^[A-Z]\d{2}(\d{2})?$")
_DATE_PATTERN = re.compile(r"^\d{8}$")


@dataclass
class SiaLayerCheck:
    """单个图层名的解析结果"""
    name: str
    layer: SiaLayer | None = None
    errors: list[str] = field(default_factory=list)
    non_standard_prefixes: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.layer is not None


def extract_sia_header(variables: Mapping[str, Any]) -> SiaHeader | None:
    """提取 SIA 文件头；没有任何 SIA 变量时返回 None"""
    fields: dict[str, str] = {}
    custom_keys: dict[str, list[str]] = {}

    for key, value in variables.items():
        if not key.startswith("$"):
            continue
        name = key[1:]
        text = "" if value is None else str(value).strip()
        if name in SIA_HEADER_FIELDS:
            fields[name] = text
        elif len(name) > 3 and name.startswith("KEY") and name[3] in ascii_lowercase:
            values = custom_keys.setdefault(f"KEY{name[3]}", [])
            if text:
                values.append(text)

    if not fields and not custom_keys:
        return None
    return SiaHeader(fields=fields, custom_keys=custom_keys)


def check_layer_name(name: str) -> SiaLayerCheck:
    """按 SIA 2014 解析图层名"""
    check = SiaLayerCheck(name=name)
    components = [c for c in name.split("_") if c]
    if len(components) < 2 * len(MANDATORY_PREFIXES):
        check.errors.append("图层名缺少必填字段")
        return check

    standard: dict[str, SiaLayerKey] = {}
    free_typing: list[SiaLayerKey] = []
    for i in range(0, len(components), 2):
        prefix = components[i]
        if i + 1 >= len(components):
            check.errors.append(f"第{i}段前缀 {prefix!r} 缺少内容")
            continue
        content = components[i + 1]

        if not _PREFIX_PATTERN.match(prefix):
            check.errors.append(f"前缀必须是单个小写字母: {prefix!r}")
        if prefix == "b" and not _HIERARCHICAL_CODE_PATTERN.match(content):
            check.errors.append(f"构件编码须为层级格式（如 C0201）: {content!r}")
        if prefix not in SIA_PREFIXES:
            check.non_standard_prefixes.append(prefix)

        key = SiaLayerKey(prefix=prefix, content=content)
        if prefix in SIA_PREFIXES:
            standard[SIA_PREFIXES[prefix]] = key
        else:
            free_typing.append(key)

    for prefix in MANDATORY_PREFIXES:
        if SIA_PREFIXES[prefix] not in standard:
            check.errors.append(f"缺少必填字段: {prefix}")

    if not check.errors:
        check.layer = SiaLayer(**standard, free_typing=free_typing)
    return check


class SiaProcessor:
    """SIA 2014 文件头与图层名处理（单次导入）"""

    def __init__(self, reporter: DiagnosticsReporter):
        self.reporter = reporter
        self._checks: dict[str, SiaLayerCheck] = {}

    def check_layer(self, name: str) -> SiaLayerCheck:
        check = self._checks.get(name)
        if check is None:
            check = check_layer_name(name)
            self._checks[name] = check
        return check

    def process_header(self, header: DxfHeader) -> SiaHeader | None:
        """提取并校验文件头"""
        sia_header = extract_sia_header(header.variables)
        if sia_header is None:
            return None

        for name in sia_header.missing_fields():
            self.reporter.error(
                DiagnosticCode.SIA_MISSING_HEADER_FIELD,
                f"SIA 文件头缺少必填项: ${name}",
                {"field": name},
            )

        date = sia_header.fields.get("DATEFILE")
        if date and not _DATE_PATTERN.match(date):
            self.reporter.error(
                DiagnosticCode.SIA_INVALID_HEADER_VALUE,
                f"DATEFILE 须为 YYYYMMDD: {date!r}",
                {"field": "DATEFILE", "value": date},
            )

        for key, values in sia_header.custom_keys.items():
            if not values:
                self.reporter.warning(
                    DiagnosticCode.SIA_EMPTY_CUSTOM_KEY,
                    f"自定义键 {key} 没有值",
                    {"field": key},
                )

        logger.info(f"SIA 文件头: 版本 {sia_header.version}，自定义键 {sorted(sia_header.custom_keys)}")
        return sia_header

    def validate_layers(self, names: Iterable[str], sia_header: SiaHeader) -> None:
        """校验图层名（系统图层除外）"""
        for name in names:
            if name.upper() in SYSTEM_LAYERS:
                continue
            check = self.check_layer(name)
            if check.non_standard_prefixes:
                self.reporter.info(
                    DiagnosticCode.SIA_NON_STANDARD_PREFIX,
                    f"图层 {name} 使用非标准前缀: {', '.join(check.non_standard_prefixes)}",
                    {"layer": name, "prefixes": check.non_standard_prefixes},
                )
            if not check.valid:
                self.reporter.warning(
                    DiagnosticCode.SIA_INVALID_LAYER_NAME,
                    f"图层名不符合 SIA 2014: {name}（{'; '.join(check.errors)}）",
                    {"layer": name, "errors": check.errors},
                )
                continue

            for key in check.layer.keys():
                allowed = sia_header.custom_key_values(key.prefix)
                if allowed and key.content not in allowed:
                    self.reporter.warning(
                        DiagnosticCode.SIA_UNMAPPED_KEY_VALUE,
                        f"图层 {name} 的 {key.prefix} 值 {key.content!r} 不在 KEY{key.prefix} 中",
                        {"layer": name, "prefix": key.prefix, "value": key.content, "allowed": allowed},
                    )

    def layer_properties(self, name: str) -> dict[str, Any] | None:
        """图层名可解析时返回要素的 sia 属性"""
        check = self.check_layer(name)
        if check.layer is None:
            return None
        return check.layer.to_properties()
