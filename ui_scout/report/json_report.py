# ui_scout/report/json_report.py

"""
Генерация JSON-отчёта для проекта UIScout.

Сериализация объекта ScanOutput в файл ``findings.json``.
"""
import json
from pathlib import Path
from typing import Any, Dict

from ui_scout.aggregator import ScanOutput
from ui_scout.utils import truncate

DESCRIPTION_LIMIT = 2000
DOM_SNIPPET_LIMIT = 1000


def _trim_finding(data: Dict[str, Any]) -> Dict[str, Any]:
    data["description"] = truncate(data.get("description") or "", DESCRIPTION_LIMIT)
    evidence = data.get("evidence") or {}
    if evidence.get("dom_snippet"):
        evidence["dom_snippet"] = truncate(evidence["dom_snippet"], DOM_SNIPPET_LIMIT)
    return data


def render_json(output: ScanOutput, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет output в формате JSON по указанному пути.

    Описания находок обрезаются до 2000 символов, DOM-фрагменты до 1000.

    :param output: объект ScanOutput с результатами сканирования
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = output.to_dict()
    data["top_findings"] = [_trim_finding(f) for f in data["top_findings"]]
    data["all_findings"] = [_trim_finding(f) for f in data["all_findings"]]

    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2 if pretty else None)

    return path
