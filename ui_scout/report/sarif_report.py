# ui_scout/report/sarif_report.py

"""
Генерация SARIF 2.1.0 отчёта (GitHub Code Scanning, Azure DevOps и т.п.).

Каждый кластер находок становится одним ``result``; правила собираются
из ``rule_id`` (или выводятся из категории и заголовка).
"""
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Sequence

from ui_scout import __version__
from ui_scout.aggregator import ScanOutput
from ui_scout.models import Finding, FindingCategory, Severity

SARIF_SCHEMA = "https://json.schemastore.org/sarif-2.1.0.json"
SARIF_VERSION = "2.1.0"
TOOL_NAME = "ui-scout"
FINGERPRINT_KEY = "ui-scout/v1"

SARIF_LEVELS: Dict[Severity, str] = {
    Severity.CRITICAL: "error",
    Severity.HIGH: "error",
    Severity.MEDIUM: "warning",
    Severity.LOW: "note",
    Severity.INFO: "note",
}

_RULE_PREFIX = {FindingCategory.ACCESSIBILITY: "a11y", FindingCategory.USABILITY: "ux"}


def rule_id_for(finding: Finding) -> str:
    """``rule_id`` или ``<prefix>/<slug заголовка>``."""
    if finding.rule_id:
        return finding.rule_id
    slug = re.sub(r"[^a-z0-9]+", "-", finding.title.lower())[:40]
    return f"{_RULE_PREFIX.get(finding.category, 'spec')}/{slug}"


def _rule_name(title: str) -> str:
    words = "".join(word[:1].upper() + word[1:].lower() for word in title.split())
    return re.sub(r"[^a-zA-Z0-9]", "", words)[:60]


def _message(finding: Finding) -> str:
    parts = [finding.description]
    if finding.wcag:
        parts.append(f"WCAG: {', '.join(finding.wcag.success_criteria)}")
    if finding.evidence.selectors:
        parts.append(f"Selector: {finding.evidence.selectors[0]}")
    if finding.suggested_fix:
        parts.append(f"Fix: {finding.suggested_fix}")
    return " | ".join(parts)


def build_sarif(findings: Sequence[Finding]) -> Dict[str, Any]:
    """Собирает SARIF-документ с одним run."""
    rules: Dict[str, Dict[str, Any]] = {}
    results: List[Dict[str, Any]] = []

    for finding in findings:
        rule_id = rule_id_for(finding)
        level = SARIF_LEVELS[finding.severity]
        if rule_id not in rules:
            rule: Dict[str, Any] = {
                "id": rule_id,
                "name": _rule_name(finding.title),
                "shortDescription": {"text": finding.title},
                "fullDescription": {"text": finding.description[:500]},
                "defaultConfiguration": {"level": level},
            }
            if finding.references:
                rule["helpUri"] = finding.references[0]
            rules[rule_id] = rule

        results.append(
            {
                "ruleId": rule_id,
                "level": level,
                "message": {"text": _message(finding)},
                "locations": [
                    {
                        "physicalLocation": {
                            "artifactLocation": {"uri": finding.page_url},
                            # у веб-страницы нет строк
                            "region": {"startLine": 1},
                        },
                        "logicalLocations": [
                            {"name": selector, "kind": "element"} for selector in finding.evidence.selectors
                        ],
                    }
                ],
                "fingerprints": {FINGERPRINT_KEY: finding.id},
            }
        )

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {"driver": {"name": TOOL_NAME, "version": __version__, "rules": list(rules.values())}},
                "results": results,
            }
        ],
    }


def render_sarif(output: ScanOutput, output_path: Path | str, *, pretty: bool = True) -> Path:
    """Сохраняет все кластеры output в SARIF по указанному пути."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(build_sarif(output.all_findings), f, ensure_ascii=False, indent=2 if pretty else None)
    return path
