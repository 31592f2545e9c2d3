# File: ui_scout/report/__init__.py
"""ui_scout.report: запись отчётов в выходной каталог, используется Engine и CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Sequence, Union

from ui_scout.aggregator import ScanOutput
from ui_scout.logger import logger
from ui_scout.report.json_report import render_json
from ui_scout.report.sarif_report import build_sarif, render_sarif

Renderer = Callable[..., Path]

REPORT_FILES: Dict[str, str] = {"json": "findings.json", "sarif": "findings.sarif"}
RENDERERS: Dict[str, Renderer] = {"json": render_json, "sarif": render_sarif}


def write_reports(
    output: ScanOutput,
    output_dir: Union[str, Path],
    formats: Sequence[str] = ("json",),
    *,
    pretty: bool = True,
) -> Dict[str, Path]:
    """Пишет отчёты в запрошенных форматах; неизвестный формат это ValueError."""
    unknown = [fmt for fmt in formats if fmt not in RENDERERS]
    if unknown:
        raise ValueError(f"Unsupported report format(s): {', '.join(unknown)}")

    for fmt in formats:
        output.artifacts.reports[fmt] = REPORT_FILES[fmt]

    written: Dict[str, Path] = {}
    for fmt in formats:
        written[fmt] = RENDERERS[fmt](output, Path(output_dir) / REPORT_FILES[fmt], pretty=pretty)
        logger.info("%s report saved to %s", fmt.upper(), written[fmt])
    return written


__all__ = ["build_sarif", "render_json", "render_sarif", "write_reports", "REPORT_FILES"]
