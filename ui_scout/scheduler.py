"""
Batch scheduler for page scan jobs.

Jobs run in fixed-size batches: every job of a batch runs concurrently in its
own browsing context and batch N+1 starts only after batch N has settled, so
no more than ``concurrency`` contexts are ever open at once. A failing job is
turned into an errored :class:`PageScanResult`; it never aborts its siblings
or the run.
"""
from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, List, Optional, Sequence, Tuple

from ui_scout.analyzers import Analyzer, run_analyzers
from ui_scout.browser import apply_auth, run_steps, wait_for_stability
from ui_scout.cluster import sort_by_severity
from ui_scout.config import AuthConfig, InteractionStep, ScanConfig
from ui_scout.evidence import EvidenceCollector
from ui_scout.logger import get_logger
from ui_scout.models import Finding, PageScanResult, ScanJob, utc_timestamp

__all__ = ("ScanScheduler", "ResultCallback", "MAX_ELEMENT_SCREENSHOTS")

MAX_ELEMENT_SCREENSHOTS = 10

ResultCallback = Callable[[PageScanResult, int, int], None]


class ScanScheduler:
    """Runs scan jobs through a context factory (normally :class:`BrowserRunner`).

    The factory must provide ``isolated_page(viewport, locale)``, an async
    context manager yielding a page and closing its context on exit.
    """

    def __init__(
        self,
        runner: Any,
        analyzers: Sequence[Analyzer],
        evidence: Optional[EvidenceCollector] = None,
        *,
        concurrency: int = 3,
        locale: Optional[str] = None,
        auth: Optional[AuthConfig] = None,
        interaction_plan: Sequence[InteractionStep] = (),
        nav_timeout: float = 30.0,
        job_timeout: float = 120.0,
        stability_timeout: float = 3.0,
        stability_interval: float = 0.1,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.runner = runner
        self.analyzers = list(analyzers)
        self.evidence = evidence
        self.concurrency = concurrency
        self.locale = locale
        self.auth = auth or AuthConfig()
        self.interaction_plan = list(interaction_plan)
        self.nav_timeout = nav_timeout
        self.job_timeout = job_timeout
        self.stability_timeout = stability_timeout
        self.stability_interval = stability_interval
        self.logger = get_logger("scheduler")

    @classmethod
    def from_config(
        cls,
        config: ScanConfig,
        runner: Any,
        analyzers: Sequence[Analyzer],
        evidence: Optional[EvidenceCollector] = None,
    ) -> ScanScheduler:
        return cls(
            runner,
            analyzers,
            evidence,
            concurrency=config.concurrency,
            locale=config.locale,
            auth=config.auth,
            interaction_plan=config.interaction_plan,
            nav_timeout=config.timeout,
            job_timeout=config.job_timeout,
            stability_timeout=config.stability_timeout,
            stability_interval=config.stability_interval,
        )

    async def run(self, jobs: Sequence[ScanJob], on_result: Optional[ResultCallback] = None) -> List[PageScanResult]:
        """Run all jobs batch by batch; results come back in job order."""
        results: List[PageScanResult] = []
        total = len(jobs)
        for start in range(0, total, self.concurrency):
            batch = jobs[start : start + self.concurrency]
            batch_results = await asyncio.gather(*(self.scan_job(job) for job in batch))
            for result in batch_results:
                results.append(result)
                status = "ERROR " + (result.error or "") if result.error else f"{len(result.findings)} findings"
                self.logger.info(
                    "[%d/%d] Scanned %s (%s): %s", len(results), total, result.job.url, result.job.viewport.name, status
                )
                if on_result is not None:
                    on_result(result, len(results), total)
        return results

    async def scan_job(self, job: ScanJob) -> PageScanResult:
        """Scan one job; always resolves, errors are captured in the result."""
        started = time.monotonic()
        try:
            async with asyncio.timeout(self.job_timeout) as deadline:
                findings, screenshot = await self._scan(job)
        except Exception as exc:
            # a navigation TimeoutError is not the job ceiling
            if isinstance(exc, TimeoutError) and deadline.expired():
                error = f"Job timed out after {self.job_timeout:g}s"
            else:
                error = str(exc) or type(exc).__name__
                self.logger.debug("Job %s (%s) failed", job.url, job.viewport.name, exc_info=True)
            return PageScanResult(
                job=job,
                error=error,
                duration=time.monotonic() - started,
                failed_at=utc_timestamp(),
            )
        return PageScanResult(
            job=job,
            findings=findings,
            screenshot_path=screenshot,
            duration=time.monotonic() - started,
        )

    async def _scan(self, job: ScanJob) -> Tuple[List[Finding], Optional[str]]:
        async with self.runner.isolated_page(job.viewport, self.locale) as page:
            await apply_auth(page, self.auth)
            await page.goto(job.url, wait_until="networkidle", timeout=self.nav_timeout * 1000)
            await wait_for_stability(page, self.stability_timeout, self.stability_interval)
            if self.interaction_plan:
                await run_steps(page, self.interaction_plan)

            screenshot: Optional[str] = None
            if self.evidence is not None:
                screenshot = await self.evidence.capture_full_page(page, job.url, job.viewport.name)

            findings = await run_analyzers(self.analyzers, page, job.url, job.viewport)
            if self.evidence is not None:
                await self._attach_element_screenshots(page, job, findings)
            return findings, screenshot

    async def _attach_element_screenshots(self, page: Any, job: ScanJob, findings: List[Finding]) -> None:
        candidates = [f for f in findings if f.evidence.selectors]
        for finding in sort_by_severity(candidates)[:MAX_ELEMENT_SCREENSHOTS]:
            path = await self.evidence.capture_element(
                page,
                finding.evidence.selectors[0],
                job.url,
                job.viewport.name,
                finding.rule_id or "finding",
            )
            if path:
                finding.evidence.screenshot_path = path
