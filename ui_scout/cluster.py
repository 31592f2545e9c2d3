"""
Finding signatures and clustering.

A signature merges "the same underlying bug on different page instances":
rule, normalized selector, viewport and URL pattern are joined and hashed.
The normalization rules below are heuristics and may be tuned freely.
"""
from __future__ import annotations

import re
from collections import defaultdict
from typing import Dict, Iterable, List, Sequence, Tuple
from urllib.parse import urlparse

from ui_scout.models import (
    CONFIDENCE_ORDER,
    SEVERITY_ORDER,
    ClusteredFinding,
    Finding,
)
from ui_scout.utils import md5_hex, remove_duplicates

__all__ = (
    "normalize_selector",
    "url_pattern",
    "generate_signature",
    "deduplicate_findings",
    "get_top_findings",
    "sort_by_severity",
    "unique_findings_per_page",
    "group_by_category",
    "group_by_page",
)

_SELECTOR_RULES: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r":nth-(?:last-)?(?:child|of-type)\(\s*\d+\s*\)"), ""),
    (re.compile(r"#[a-zA-Z0-9_-]*\d+[a-zA-Z0-9_-]*"), "[dynamic-id]"),
    (re.compile(r"\[\d+\]"), "[n]"),
)

_PATH_RULES: Tuple[Tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"/\d+(?=/|$)"), "/:id"),
    (re.compile(r"/[a-f0-9]{8,}(?=/|$)", re.IGNORECASE), "/:hash"),
)


def normalize_selector(selector: str) -> str:
    for pattern, replacement in _SELECTOR_RULES:
        selector = pattern.sub(replacement, selector)
    return selector.strip() or "unknown"


def url_pattern(url: str) -> str:
    """``hostname + path`` with numeric and hash-like segments replaced."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if not parsed.hostname:
        return url
    path = parsed.path
    for pattern, replacement in _PATH_RULES:
        path = pattern.sub(replacement, path)
    return f"{parsed.hostname}{path}"


def generate_signature(finding: Finding) -> str:
    selectors = finding.evidence.selectors
    parts = [
        finding.rule_id or finding.tool or "unknown",
        normalize_selector(selectors[0]) if selectors else "unknown",
        finding.viewport,
        url_pattern(finding.page_url),
    ]
    return md5_hex("|".join(parts))


def _severity_key(finding: Finding) -> int:
    return SEVERITY_ORDER[finding.severity]


def sort_by_severity(findings: Iterable[Finding]) -> List[Finding]:
    """Stable sort, most severe first."""
    return sorted(findings, key=_severity_key)


def deduplicate_findings(findings: Iterable[Finding]) -> List[ClusteredFinding]:
    """
    Group findings by signature.

    The first finding of each group (input order) represents it. Clusters are
    ordered by severity rank, then by occurrence count descending.
    """
    groups: Dict[str, List[Finding]] = {}
    for finding in findings:
        groups.setdefault(generate_signature(finding), []).append(finding)

    clusters: List[ClusteredFinding] = []
    for group in groups.values():
        representative = group[0]
        fields = {name: getattr(representative, name) for name in Finding.__dataclass_fields__}
        fields["id"] = f"clustered-{representative.id}"
        clusters.append(
            ClusteredFinding(
                **fields,
                affected_pages=remove_duplicates([f.page_url for f in group]),
                occurrence_count=len(group),
                representative_url=representative.page_url,
            )
        )

    clusters.sort(key=lambda c: (SEVERITY_ORDER[c.severity], -c.occurrence_count))
    return clusters


def get_top_findings(findings: Sequence[Finding], limit: int = 10) -> List[Finding]:
    """Most impactful findings: severity first, then confidence."""
    ranked = sorted(
        findings,
        key=lambda f: (SEVERITY_ORDER[f.severity], CONFIDENCE_ORDER[f.confidence]),
    )
    return ranked[:limit]


def unique_findings_per_page(findings: Iterable[Finding]) -> List[Finding]:
    """Keep one finding per (page, rule, first selector)."""
    seen = set()
    result: List[Finding] = []
    for finding in findings:
        selector = finding.evidence.selectors[0] if finding.evidence.selectors else ""
        key = (finding.page_url, finding.rule_id or finding.tool, selector)
        if key not in seen:
            seen.add(key)
            result.append(finding)
    return result


def group_by_category(findings: Iterable[Finding]) -> Dict[str, List[Finding]]:
    groups: Dict[str, List[Finding]] = defaultdict(list)
    for finding in findings:
        groups[finding.category.value].append(finding)
    return dict(groups)


def group_by_page(findings: Iterable[Finding]) -> Dict[str, List[Finding]]:
    groups: Dict[str, List[Finding]] = defaultdict(list)
    for finding in findings:
        groups[finding.page_url].append(finding)
    return dict(groups)
