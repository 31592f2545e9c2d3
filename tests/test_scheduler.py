# File: tests/test_scheduler.py
from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from tests.conftest import FakePage, FakeRunner
from ui_scout.analyzers import AnalyzerResult
from ui_scout.config import AuthConfig, ClickStep
from ui_scout.evidence import EvidenceCollector
from ui_scout.jobs import build_job_matrix
from ui_scout.models import Severity, resolve_viewports
from ui_scout.scheduler import MAX_ELEMENT_SCREENSHOTS, ScanScheduler

URLS = [f"https://shop.test/p/{i}" for i in range(5)]


class RecordingAnalyzer:
    """Emits one finding per page and records the order it saw pages in."""

    def __init__(self, make_finding, delay: float = 0.01, fail_on: str | None = None) -> None:
        self.make_finding = make_finding
        self.delay = delay
        self.fail_on = fail_on
        self.seen: list[str] = []

    async def analyze(self, page, page_url, viewport):
        self.seen.append(page_url)
        await asyncio.sleep(self.delay)
        if page_url == self.fail_on:
            raise RuntimeError("analyzer crashed")
        return AnalyzerResult(findings=[self.make_finding(page_url=page_url, viewport=viewport.name)])


def scheduler_for(runner, analyzers, **kwargs) -> ScanScheduler:
    kwargs.setdefault("stability_timeout", 0.2)
    kwargs.setdefault("stability_interval", 0.001)
    return ScanScheduler(runner, analyzers, **kwargs)


@pytest.mark.asyncio()
async def test_concurrency_is_bounded_and_batches_are_sequential(make_finding):
    failing = URLS[1]

    def page_factory():
        return FakePage(goto_delay=0.02, fail_urls={failing: RuntimeError("net::ERR_CONNECTION_REFUSED")})

    runner = FakeRunner(page_factory)
    scheduler = scheduler_for(runner, [RecordingAnalyzer(make_finding)], concurrency=2)
    jobs = build_job_matrix(URLS, resolve_viewports(["desktop"]))
    progress = []

    results = await scheduler.run(jobs, on_result=lambda r, n, total: progress.append((n, total, r.job.url)))

    assert runner.peak <= 2
    assert runner.opened == runner.closed == 5
    assert runner.open_contexts == 0
    # no context of batch N+1 opens before every context of batch N has closed
    opens_and_closes = [kind for kind, _ in runner.events]
    assert opens_and_closes == ["open", "open", "close", "close", "open", "open", "close", "close", "open", "close"]
    assert [r.job.url for r in results] == URLS
    assert progress == [(i + 1, 5, url) for i, url in enumerate(URLS)]
    assert results[1].error == "net::ERR_CONNECTION_REFUSED"
    assert results[1].findings == []
    assert all(r.ok for i, r in enumerate(results) if i != 1)


@pytest.mark.asyncio()
async def test_navigation_error_does_not_affect_siblings(make_finding):
    bad = URLS[0]
    runner = FakeRunner(lambda: FakePage(fail_urls={bad: TimeoutError("Timeout 30000ms exceeded")}))
    scheduler = scheduler_for(runner, [RecordingAnalyzer(make_finding)], concurrency=3)
    jobs = build_job_matrix(URLS[:3], resolve_viewports(["desktop", "mobile"]))

    results = await scheduler.run(jobs)

    errored = [r for r in results if not r.ok]
    assert [(r.job.url, r.job.viewport.name) for r in errored] == [(bad, "desktop"), (bad, "mobile")]
    scan_error = errored[0].to_error()
    assert scan_error.page_url == bad
    assert scan_error.viewport == "desktop"
    assert "Timeout" in scan_error.error
    assert sum(len(r.findings) for r in results) == 4
    assert runner.opened == runner.closed == 6


@pytest.mark.asyncio()
async def test_error_timestamp_recorded_when_job_fails(make_finding):
    errors = {url: RuntimeError("net::ERR_CONNECTION_RESET") for url in URLS[:2]}
    runner = FakeRunner(lambda: FakePage(goto_delay=0.05, fail_urls=errors))
    scheduler = scheduler_for(runner, [RecordingAnalyzer(make_finding)], concurrency=1)
    results = await scheduler.run(build_job_matrix(URLS[:2], resolve_viewports(["desktop"])))

    first, second = (r.to_error() for r in results)
    assert first.timestamp == results[0].failed_at
    assert datetime.fromisoformat(first.timestamp) < datetime.fromisoformat(second.timestamp)

@pytest.mark.asyncio()
async def test_job_timeout_ceiling(make_finding):
    runner = FakeRunner(lambda: FakePage(goto_delay=1.0))
    scheduler = scheduler_for(runner, [RecordingAnalyzer(make_finding)], job_timeout=0.05)
    results = await scheduler.run(build_job_matrix(URLS[:1], resolve_viewports(["desktop"])))
    assert results[0].error.startswith("Job timed out")
    assert runner.closed == 1


@pytest.mark.asyncio()
async def test_failing_analyzer_is_isolated(make_finding):
    runner = FakeRunner()
    crashing = RecordingAnalyzer(make_finding, fail_on=URLS[0])
    healthy = RecordingAnalyzer(make_finding)
    scheduler = scheduler_for(runner, [crashing, healthy])
    results = await scheduler.run(build_job_matrix(URLS[:1], resolve_viewports(["desktop"])))
    assert results[0].ok
    assert len(results[0].findings) == 1


@pytest.mark.asyncio()
async def test_auth_and_interaction_plan_applied_per_context(make_finding):
    pages = []

    def page_factory():
        page = FakePage()
        pages.append(page)
        return page

    auth = AuthConfig.model_validate({"headers": {"Authorization": "Bearer x"}})
    scheduler = scheduler_for(
        FakeRunner(page_factory),
        [RecordingAnalyzer(make_finding)],
        auth=auth,
        interaction_plan=[ClickStep(action="click", selector="#accept-cookies")],
    )
    await scheduler.run(build_job_matrix(URLS[:2], resolve_viewports(["desktop"])))
    assert len(pages) == 2
    for page in pages:
        assert page.extra_headers == {"Authorization": "Bearer x"}
        assert ("click", "#accept-cookies") in page.calls


@pytest.mark.asyncio()
async def test_screenshots_attached_to_most_severe_findings(tmp_path, make_finding):
    class ManyFindings:
        async def analyze(self, page, page_url, viewport):
            findings = [
                make_finding(page_url=page_url, severity=Severity.LOW, selector=f".low-{i}") for i in range(12)
            ]
            findings.append(make_finding(page_url=page_url, severity=Severity.CRITICAL, selector=".crit"))
            findings.append(make_finding(page_url=page_url, severity=Severity.HIGH, selector=None))
            return AnalyzerResult(findings=findings)

    evidence = EvidenceCollector(tmp_path)
    evidence.init()
    scheduler = scheduler_for(FakeRunner(), [ManyFindings()], evidence=evidence)
    [result] = await scheduler.run(build_job_matrix(URLS[:1], resolve_viewports(["desktop"])))

    assert result.screenshot_path and result.screenshot_path.startswith("screenshots/")
    with_shots = [f for f in result.findings if f.evidence.screenshot_path]
    assert len(with_shots) == MAX_ELEMENT_SCREENSHOTS
    assert any(f.evidence.selectors == [".crit"] for f in with_shots)
    # findings without a selector never get an element screenshot
    assert all(f.evidence.selectors for f in with_shots)
    lows = [f for f in result.findings if f.severity is Severity.LOW]
    assert [bool(f.evidence.screenshot_path) for f in lows] == [True] * 9 + [False] * 3


def test_concurrency_must_be_positive():
    with pytest.raises(ValueError):
        ScanScheduler(FakeRunner(), [], concurrency=0)
