"""
Analyzer plug-in protocol and loading.

An analyzer is any object with ``async analyze(page, page_url, viewport)``
returning :class:`AnalyzerResult`. Analyzers are referenced in the config as
``"package.module:factory"``; the factory is called with ``ruleset=`` (the
loaded custom rules or ``None``).
"""
from __future__ import annotations

import asyncio
import importlib
from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable

from ui_scout.exceptions import ConfigError
from ui_scout.logger import get_logger
from ui_scout.models import Finding, ViewportConfig
from ui_scout.rules import SpecRuleset

__all__ = ("Analyzer", "AnalyzerResult", "load_analyzers", "run_analyzers")

log = get_logger("analyzers")


@dataclass(slots=True)
class AnalyzerResult:
    findings: List[Finding] = field(default_factory=list)
    raw_data: Any = None


@runtime_checkable
class Analyzer(Protocol):
    """Must skip a bad element rather than raise, and finish within the job budget."""

    async def analyze(self, page: Any, page_url: str, viewport: ViewportConfig) -> AnalyzerResult:
        ...


def _resolve(path: str) -> Any:
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError(f"Analyzer reference must look like 'module:attr', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import analyzer module {module_name!r}: {exc}") from exc
    target: Any = module
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as exc:
            raise ConfigError(f"Analyzer {path!r} not found") from exc
    return target


def load_analyzers(paths: Sequence[str], ruleset: Optional[SpecRuleset] = None) -> List[Analyzer]:
    """Import and build analyzers; any problem is a configuration error."""
    analyzers: List[Analyzer] = []
    for path in paths:
        factory = _resolve(path)
        if not callable(factory):
            raise ConfigError(f"Analyzer {path!r} is not callable")
        try:
            analyzer = factory(ruleset=ruleset)
        except TypeError as exc:
            raise ConfigError(f"Analyzer {path!r} could not be created: {exc}") from exc
        if not isinstance(analyzer, Analyzer):
            raise ConfigError(f"Analyzer {path!r} has no async analyze() method")
        log.debug("Loaded analyzer %s", path)
        analyzers.append(analyzer)
    return analyzers


async def run_analyzers(
    analyzers: Sequence[Analyzer],
    page: Any,
    page_url: str,
    viewport: ViewportConfig,
) -> List[Finding]:
    """Run all analyzers concurrently; a failing analyzer contributes nothing."""
    results = await asyncio.gather(
        *(analyzer.analyze(page, page_url, viewport) for analyzer in analyzers),
        return_exceptions=True,
    )
    findings: List[Finding] = []
    for analyzer, result in zip(analyzers, results):
        if isinstance(result, BaseException):
            if isinstance(result, asyncio.CancelledError):
                raise result
            log.error("Analyzer %s failed on %s: %s", type(analyzer).__name__, page_url, result)
            continue
        findings.extend(result.findings)
    return findings
