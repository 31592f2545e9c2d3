"""
Модуль для загрузки и валидации конфигурации сканера UIScout.
Используется Pydantic для описания схемы и проверки данных.

Шаги логина и сценария взаимодействия описаны как размеченное объединение
(discriminated union) по полю ``action``.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)

from ui_scout.exceptions import ConfigError

__all__ = [
    "AuthCookie",
    "AuthConfig",
    "NavigateStep",
    "TypeStep",
    "ClickStep",
    "WaitForNavigationStep",
    "WaitForSelectorStep",
    "HoverStep",
    "ScrollStep",
    "WaitStep",
    "PressStep",
    "LoginStep",
    "InteractionStep",
    "ScanConfig",
    "load_config",
]


class _Step(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class NavigateStep(_Step):
    action: Literal["navigate"]
    url: str
    timeout: Optional[float] = Field(None, gt=0, description="Таймаут (секунд).")


class TypeStep(_Step):
    action: Literal["type"]
    selector: str
    value: str = Field(..., description="Значение; ${NAME} подставляется из окружения.")


class ClickStep(_Step):
    action: Literal["click"]
    selector: str


class WaitForNavigationStep(_Step):
    action: Literal["waitForNavigation"]
    timeout: Optional[float] = Field(None, gt=0)


class WaitForSelectorStep(_Step):
    action: Literal["waitForSelector"]
    selector: str
    timeout: Optional[float] = Field(None, gt=0)


class HoverStep(_Step):
    action: Literal["hover"]
    selector: str


class ScrollStep(_Step):
    action: Literal["scroll"]
    selector: Optional[str] = None
    x: Optional[int] = None
    y: Optional[int] = None


class WaitStep(_Step):
    action: Literal["wait"]
    duration: int = Field(1000, ge=0, description="Пауза (миллисекунд).")


class PressStep(_Step):
    action: Literal["press"]
    key: str


LoginStep = Annotated[
    Union[NavigateStep, TypeStep, ClickStep, WaitForNavigationStep, WaitForSelectorStep],
    Field(discriminator="action"),
]
InteractionStep = Annotated[
    Union[ClickStep, TypeStep, HoverStep, ScrollStep, WaitStep, PressStep],
    Field(discriminator="action"),
]


class AuthCookie(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    name: str
    value: str
    domain: str
    path: str = "/"
    secure: bool = True
    http_only: bool = Field(False, alias="httpOnly")


class AuthConfig(BaseModel):
    """Аутентификация: куки, заголовки и/или сценарий логина."""
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    cookies: List[AuthCookie] = Field(default_factory=list)
    headers: Dict[str, str] = Field(default_factory=dict)
    login_steps: List[LoginStep] = Field(default_factory=list, alias="loginSteps")


class ScanConfig(BaseModel):
    """Конфигурация для одного запуска сканирования."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    start_urls: List[HttpUrl] = Field(..., min_length=1, description="Стартовые URL.")
    crawl_mode: Literal["single", "sitemap", "bfs", "journey"] = Field("single", description="Режим поиска страниц.")
    max_pages: int = Field(50, ge=1, description="Жесткий лимит по числу страниц.")
    max_depth: int = Field(3, ge=0, description="Максимальная глубина обхода ссылок.")
    allow_domains: List[str] = Field(default_factory=list)
    deny_patterns: List[str] = Field(default_factory=list, description="Регулярные выражения.")
    same_domain_only: bool = True
    respect_robots_txt: bool = True

    viewports: List[Literal["desktop", "tablet", "mobile"]] = Field(default_factory=lambda: ["desktop"], min_length=1)
    locales: List[str] = Field(default_factory=lambda: ["en-US"])
    auth: AuthConfig = Field(default_factory=AuthConfig)
    interaction_plan: List[InteractionStep] = Field(default_factory=list)
    custom_specs: Optional[Path] = Field(None, description="Файл пользовательских правил (JSON/YAML).")
    analyzers: List[str] = Field(default_factory=list, description="Плагины анализа: 'module:attr'.")

    output_formats: List[Literal["json", "sarif"]] = Field(default_factory=lambda: ["json"])
    output_dir: Path = Path("./reports")

    concurrency: int = Field(3, ge=1, description="Число одновременно открытых контекстов.")
    timeout: float = Field(30.0, gt=0, description="Таймаут на одну операцию браузера (секунд).")
    job_timeout: float = Field(120.0, gt=0, description="Потолок на одну задачу (секунд).")
    stability_timeout: float = Field(3.0, ge=0)
    stability_interval: float = Field(0.1, gt=0)
    headless: bool = True
    user_agent: str = Field("UIScoutBot/1.0", min_length=1, description="Заголовок User-Agent.")

    @field_validator("viewports")
    @classmethod
    def _dedupe_viewports(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @property
    def seed_urls(self) -> List[str]:
        return [str(u) for u in self.start_urls]

    @property
    def locale(self) -> str:
        return self.locales[0] if self.locales else "en-US"

    def with_overrides(self, **overrides: Any) -> ScanConfig:
        """Возвращает проверенную копию с заменёнными полями (None пропускается)."""
        data = self.model_dump(mode="json", by_alias=True)
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return ScanConfig.model_validate(data)
        except ValidationError as exc:
            raise ConfigError(f"Некорректные параметры: {exc}") from exc


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def read_mapping(path: Path) -> dict[str, Any]:
    """Читает YAML/JSON-файл в словарь по расширению."""
    suffix = path.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path)
    if suffix == ".json":
        return _read_json(path)
    raise ConfigError(f"Неподдерживаемый формат файла: {suffix}")


def load_config(path: Union[str, Path, None]) -> ScanConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ScanConfig.
    При отсутствии файла бросает FileNotFoundError, при ошибке схемы ConfigError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(_DEFAULT_CFG))
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    data = read_mapping(path_obj)
    try:
        return ScanConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"Некорректная конфигурация {path_obj}: {exc}") from exc
