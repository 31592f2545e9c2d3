# File: ui_scout/aggregator.py
"""ui_scout.aggregator: сводка результатов сканирования и итоговый ScanOutput."""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ui_scout.cluster import deduplicate_findings, get_top_findings
from ui_scout.models import (
    ClusteredFinding,
    Finding,
    FindingCategory,
    PageScanResult,
    ScanError,
    Severity,
)
from ui_scout.utils import format_duration, remove_duplicates

__all__ = ("ScanSummary", "ScanArtifacts", "ScanOutput", "build_summary", "aggregate_results")


@dataclass(slots=True)
class ScanSummary:
    """Сводные счётчики прогона."""

    pages_scanned: int = 0
    pages_requested: int = 0
    pages_errored: List[str] = field(default_factory=list)
    total_findings: int = 0
    scan_duration: str = "0s"
    start_time: str = ""
    end_time: str = ""
    findings_by_severity: Dict[str, int] = field(default_factory=dict)
    findings_by_category: Dict[str, int] = field(default_factory=dict)
    findings_by_viewport: Dict[str, int] = field(default_factory=dict)
    viewports_scanned: List[str] = field(default_factory=list)
    errors: List[ScanError] = field(default_factory=list)


@dataclass(slots=True)
class ScanArtifacts:
    """Пути к файлам, созданным прогоном (относительно output_dir, кроме самого каталога)."""

    output_dir: str = ""
    screenshots_dir: str = "screenshots"
    reports: Dict[str, str] = field(default_factory=dict)
    screenshots: List[str] = field(default_factory=list)


@dataclass(slots=True)
class ScanOutput:
    """Итог сканирования: сводка, артефакты, топ находок и все кластеры."""

    summary: ScanSummary
    artifacts: ScanArtifacts = field(default_factory=ScanArtifacts)
    top_findings: List[ClusteredFinding] = field(default_factory=list)
    all_findings: List[ClusteredFinding] = field(default_factory=list)

    @property
    def has_critical(self) -> bool:
        return any(f.severity is Severity.CRITICAL for f in self.all_findings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": asdict(self.summary),
            "artifacts": asdict(self.artifacts),
            "top_findings": [f.to_dict() for f in self.top_findings],
            "all_findings": [f.to_dict() for f in self.all_findings],
        }

    def json(self, *, pretty: bool = False) -> str:
        """Возвращает JSON-представление ScanOutput."""
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2 if pretty else None)


def _count(values: Sequence[str], keys: Sequence[str]) -> Dict[str, int]:
    counter = Counter(values)
    return {key: counter.get(key, 0) for key in keys}


def build_summary(
    results: Sequence[PageScanResult],
    clustered: Sequence[Finding],
    *,
    pages_requested: int,
    start: datetime,
    end: datetime,
) -> ScanSummary:
    """Собирает ScanSummary; находки считаются только по успешным заданиям."""
    ok_results = [r for r in results if r.ok]
    errored = [r for r in results if not r.ok]
    return ScanSummary(
        pages_scanned=len({r.job.url for r in ok_results}),
        pages_requested=pages_requested,
        pages_errored=remove_duplicates([r.job.url for r in errored]),
        total_findings=len(clustered),
        scan_duration=format_duration((end - start).total_seconds()),
        start_time=start.isoformat(),
        end_time=end.isoformat(),
        findings_by_severity=_count([f.severity.value for f in clustered], [s.value for s in Severity]),
        findings_by_category=_count([f.category.value for f in clustered], [c.value for c in FindingCategory]),
        findings_by_viewport=dict(Counter(f.viewport for f in clustered)),
        viewports_scanned=remove_duplicates([r.job.viewport.name for r in results]),
        errors=[r.to_error() for r in errored],
    )


def aggregate_results(
    results: Sequence[PageScanResult],
    *,
    pages_requested: int,
    start: datetime,
    end: datetime,
    top_limit: int = 10,
    artifacts: Optional[ScanArtifacts] = None,
) -> ScanOutput:
    """Кластеризует находки успешных заданий и собирает ScanOutput."""
    findings: List[Finding] = [f for r in results if r.ok for f in r.findings]
    clustered = deduplicate_findings(findings)
    summary = build_summary(results, clustered, pages_requested=pages_requested, start=start, end=end)
    artifacts = artifacts or ScanArtifacts()
    artifacts.screenshots = remove_duplicates(
        [r.screenshot_path for r in results if r.screenshot_path]
        + [f.evidence.screenshot_path for f in findings if f.evidence.screenshot_path]
    )
    return ScanOutput(
        summary=summary,
        artifacts=artifacts,
        top_findings=get_top_findings(clustered, limit=top_limit),
        all_findings=clustered,
    )
