"""ui_scout.jobs: Построение матрицы задач URL × viewport."""

from __future__ import annotations

from typing import Iterable, List

from ui_scout.models import ScanJob, ViewportConfig
from ui_scout.utils import remove_duplicates

__all__ = ["build_job_matrix"]


def build_job_matrix(urls: Iterable[str], viewports: Iterable[ViewportConfig]) -> List[ScanJob]:
    """Возвращает задачи в порядке URL-major: все viewport'ы URL[0], затем URL[1] и т.д.

    Порядок детерминирован, на нём строится отчёт о прогрессе.
    """
    viewport_list = list(viewports)
    return [ScanJob(url, viewport) for url in remove_duplicates(list(urls)) for viewport in viewport_list]
