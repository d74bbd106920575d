"""
SIA 2014 模型 - 文件头元数据与图层名结构

图层名形如 _a_<责任方>_b_<构件>_c_<表达>[_d_<比例>…]，
a/b/c 为必填，d–h 为标准可选项，i–z 为自由字段。
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

# 文件头必填变量（不含 $ 前缀）
SIA_HEADER_FIELDS: tuple[str, ...] = (
    "OBJFILE",
    "PROJFILE",
    "FILE",
    "TEXTFILE",
    "DATEFILE",
    "VERFILE",
    "AGENTFILE",
    "VERSIA2014",
)

# 标准前缀 → 字段名
SIA_PREFIXES: dict[str, str] = {
    "a": "agent",
    "b": "element",
    "c": "presentation",
    "d": "scale",
    "e": "phase",
    "f": "status",
    "g": "location",
    "h": "projection",
}


class SiaLayerKey(BaseModel):
    """图层名中的一个前缀/内容对"""
    prefix: str
    content: str

    model_config = {"frozen": True}


class SiaLayer(BaseModel):
    """按 SIA 2014 解析出的图层结构"""
    agent: SiaLayerKey
    element: SiaLayerKey
    presentation: SiaLayerKey
    scale: SiaLayerKey | None = None
    phase: SiaLayerKey | None = None
    status: SiaLayerKey | None = None
    location: SiaLayerKey | None = None
    projection: SiaLayerKey | None = None
    free_typing: list[SiaLayerKey] = Field(default_factory=list)

    def keys(self) -> list[SiaLayerKey]:
        """全部前缀/内容对（标准项在前）"""
        standard = [getattr(self, name) for name in SIA_PREFIXES.values()]
        return [k for k in standard if k is not None] + list(self.free_typing)

    def to_properties(self) -> dict[str, Any]:
        """要素属性中的 sia 字段"""
        props: dict[str, Any] = {}
        for name in SIA_PREFIXES.values():
            key = getattr(self, name)
            if key is not None:
                props[name] = key.content
        if self.free_typing:
            props["free_typing"] = {k.prefix: k.content for k in self.free_typing}
        return props


class SiaHeader(BaseModel):
    """SIA 2014 文件头元数据"""
    fields: dict[str, str] = Field(default_factory=dict, description="必填变量名（无$）→ 值")
    custom_keys: dict[str, list[str]] = Field(default_factory=dict, description="KEYa…KEYz → 允许值")

    @property
    def version(self) -> str | None:
        return self.fields.get("VERSIA2014")

    def missing_fields(self) -> list[str]:
        return [name for name in SIA_HEADER_FIELDS if not self.fields.get(name)]

    def custom_key_values(self, prefix: str) -> list[str]:
        return self.custom_keys.get(f"KEY{prefix}", [])
