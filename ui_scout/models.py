"""
Data models shared by the scheduler, analyzers and the cluster engine.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

__all__ = (
    "Severity",
    "Confidence",
    "FindingCategory",
    "ViewportConfig",
    "VIEWPORT_PRESETS",
    "resolve_viewports",
    "ScanJob",
    "FindingEvidence",
    "WCAGReference",
    "Finding",
    "ClusteredFinding",
    "ScanError",
    "PageScanResult",
    "SEVERITY_ORDER",
    "CONFIDENCE_ORDER",
    "utc_timestamp",
)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class Confidence(str, Enum):
    CERTAIN = "certain"
    LIKELY = "likely"
    NEEDS_REVIEW = "needs_review"


class FindingCategory(str, Enum):
    ACCESSIBILITY = "accessibility"
    USABILITY = "usability"
    SPEC = "spec"


SEVERITY_ORDER: Dict[Severity, int] = {sev: rank for rank, sev in enumerate(Severity)}
CONFIDENCE_ORDER: Dict[Confidence, int] = {conf: rank for rank, conf in enumerate(Confidence)}


@dataclass(frozen=True, slots=True)
class ViewportConfig:
    """Named width/height preset used to probe responsive behaviour."""

    name: str
    width: int
    height: int

    @property
    def is_mobile(self) -> bool:
        return self.name == "mobile"

    @property
    def has_touch(self) -> bool:
        return self.name in ("mobile", "tablet")


VIEWPORT_PRESETS: Dict[str, ViewportConfig] = {
    "desktop": ViewportConfig("desktop", 1920, 1080),
    "tablet": ViewportConfig("tablet", 768, 1024),
    "mobile": ViewportConfig("mobile", 375, 812),
}


def resolve_viewports(names: List[str]) -> List[ViewportConfig]:
    """Map preset names to configs; unknown names raise KeyError."""
    return [VIEWPORT_PRESETS[name] for name in names]


@dataclass(frozen=True, slots=True)
class ScanJob:
    """One (url, viewport) pair, owned by a single scheduler slot."""

    url: str
    viewport: ViewportConfig


@dataclass(slots=True)
class FindingEvidence:
    # mutable: screenshot_path is attached after the analyzers have run
    selectors: List[str] = field(default_factory=list)
    dom_snippet: Optional[str] = None
    screenshot_path: Optional[str] = None


@dataclass(frozen=True, slots=True)
class WCAGReference:
    version: str
    level: str
    success_criteria: List[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Finding:
    """A single issue reported by an analyzer for one page and viewport."""

    id: str
    category: FindingCategory
    severity: Severity
    confidence: Confidence
    page_url: str
    viewport: str
    title: str
    description: str
    evidence: FindingEvidence = field(default_factory=FindingEvidence)
    rule_id: Optional[str] = None
    tool: Optional[str] = None
    suggested_fix: Optional[str] = None
    locale: Optional[str] = None
    steps_to_reproduce: List[str] = field(default_factory=list)
    expected: str = ""
    actual: str = ""
    wcag: Optional[WCAGReference] = None
    references: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["severity"] = self.severity.value
        data["confidence"] = self.confidence.value
        return data


@dataclass(frozen=True, slots=True)
class ClusteredFinding(Finding):
    """Representative finding of a signature group."""

    affected_pages: List[str] = field(default_factory=list)
    occurrence_count: int = 1
    representative_url: str = ""


@dataclass(frozen=True, slots=True)
class ScanError:
    """Unrecoverable failure of one job; never retried within a run."""

    page_url: str
    viewport: str
    error: str
    timestamp: str = field(default_factory=utc_timestamp)


@dataclass(slots=True)
class PageScanResult:
    job: ScanJob
    findings: List[Finding] = field(default_factory=list)
    error: Optional[str] = None
    screenshot_path: Optional[str] = None
    duration: float = 0.0
    # moment the job failed, set by the scheduler
    failed_at: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_error(self) -> ScanError:
        return ScanError(
            page_url=self.job.url,
            viewport=self.job.viewport.name,
            error=self.error or "",
            timestamp=self.failed_at or utc_timestamp(),
        )
