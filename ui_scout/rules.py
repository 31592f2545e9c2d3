"""ui_scout.rules: Схема файла пользовательских правил дизайна.

Правила только загружаются и проверяются; их исполнение выполняют плагины
анализа, которым передаётся готовый :class:`SpecRuleset`.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ui_scout.config import read_mapping
from ui_scout.exceptions import ConfigError
from ui_scout.models import Severity

__all__ = ["SpecRule", "SpecRuleset", "load_ruleset"]


class _RuleModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class BoundingBoxAssertion(_RuleModel):
    min_width_px: Optional[float] = Field(None, alias="minWidthPx")
    min_height_px: Optional[float] = Field(None, alias="minHeightPx")
    max_width_px: Optional[float] = Field(None, alias="maxWidthPx")
    max_height_px: Optional[float] = Field(None, alias="maxHeightPx")


class AccessibleNameAssertion(_RuleModel):
    min_length: Optional[int] = Field(None, alias="minLength")
    pattern: Optional[str] = None
    required: Optional[bool] = None


class ComputedStyleAssertion(_RuleModel):
    property: str
    in_: Optional[List[str]] = Field(None, alias="in")
    not_in: Optional[List[str]] = Field(None, alias="notIn")
    matches: Optional[str] = None
    min_value: Optional[float] = Field(None, alias="minValue")
    max_value: Optional[float] = Field(None, alias="maxValue")


class RoleAssertion(_RuleModel):
    equals: Optional[str] = None
    in_: Optional[List[str]] = Field(None, alias="in")


class AttributeAssertion(_RuleModel):
    name: str
    exists: Optional[bool] = None
    value: Optional[str] = None
    pattern: Optional[str] = None


class SpecRuleAssertion(_RuleModel):
    bounding_box: Optional[BoundingBoxAssertion] = Field(None, alias="boundingBox")
    accessible_name: Optional[AccessibleNameAssertion] = Field(None, alias="accessibleName")
    computed_style: Optional[ComputedStyleAssertion] = Field(None, alias="computedStyle")
    role: Optional[RoleAssertion] = None
    attribute: Optional[AttributeAssertion] = None
    focusable: Optional[bool] = None
    visible: Optional[bool] = None


class SpecRuleCondition(_RuleModel):
    viewport: Optional[Literal["desktop", "tablet", "mobile"]] = None
    selector: Optional[str] = None
    has_attribute: Optional[str] = Field(None, alias="hasAttribute")


class SpecRule(_RuleModel):
    id: str = Field(..., min_length=1)
    type: Literal["accessibility-spec", "usability-spec", "ui-token-spec"]
    selector: str = Field(..., min_length=1)
    when: Optional[SpecRuleCondition] = None
    assert_: SpecRuleAssertion = Field(..., alias="assert")
    severity: Severity
    message: str
    suggested_fix: Optional[str] = Field(None, alias="suggestedFix")
    references: List[str] = Field(default_factory=list)


class SpecRuleset(_RuleModel):
    version: str
    rules: List[SpecRule] = Field(default_factory=list)


def load_ruleset(path: Union[str, Path]) -> SpecRuleset:
    """Загружает файл правил; любая ошибка формата превращается в ConfigError."""
    path_obj = Path(path).expanduser()
    if not path_obj.is_file():
        raise ConfigError(f"Файл правил не найден: {path_obj}")
    data = read_mapping(path_obj)
    try:
        ruleset = SpecRuleset.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Некорректный файл правил {path_obj}: {exc}") from exc

    ids = [rule.id for rule in ruleset.rules]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigError(f"Повторяющиеся id правил: {', '.join(duplicates)}")
    return ruleset
