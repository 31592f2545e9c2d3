# File: ui_scout/engine.py
"""ui_scout.engine: оркестрация прогона (поиск страниц, сканирование, кластеризация, отчёты)."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, List, Optional

from ui_scout.aggregator import ScanArtifacts, ScanOutput, aggregate_results
from ui_scout.analyzers import Analyzer, load_analyzers
from ui_scout.browser import BrowserRunner
from ui_scout.config import ScanConfig, load_config
from ui_scout.crawler import BfsCrawler, SitemapDiscoverer
from ui_scout.evidence import EvidenceCollector
from ui_scout.jobs import build_job_matrix
from ui_scout.logger import logger
from ui_scout.models import VIEWPORT_PRESETS, resolve_viewports
from ui_scout.report import write_reports
from ui_scout.rules import SpecRuleset, load_ruleset
from ui_scout.scheduler import ScanScheduler
from ui_scout.utils import remove_duplicates

__all__ = ["Engine", "start_scan"]


class Engine:
    """Фасад для CLI и тестов: загрузка правил и плагинов, поиск страниц, запуск сканирования."""

    @staticmethod
    def load_config(path: Optional[str]) -> ScanConfig:
        """Загружает конфиг из YAML/JSON или использует значения по умолчанию."""
        return load_config(path)

    def __init__(self, config: ScanConfig, *, runner: Any = None) -> None:
        """Инициализирует Engine; runner подменяется в тестах."""
        self.config = config
        self.runner = runner
        self.ruleset: Optional[SpecRuleset] = None
        self.analyzers: List[Analyzer] = []

    def prepare(self) -> None:
        """Загружает пользовательские правила и анализаторы; ошибки здесь фатальны (ConfigError)."""
        if self.config.custom_specs is not None:
            self.ruleset = load_ruleset(self.config.custom_specs)
            logger.info("Loaded %d custom rules from %s", len(self.ruleset.rules), self.config.custom_specs)
        self.analyzers = load_analyzers(self.config.analyzers, ruleset=self.ruleset)
        if not self.analyzers:
            logger.warning("No analyzers configured: pages will be captured but not analyzed")

    async def run(self) -> ScanOutput:
        """Полный прогон: возвращает ScanOutput и пишет отчёты в output_dir."""
        self.prepare()
        start = datetime.now(timezone.utc)
        logger.info("Starting scan (mode=%s, viewports=%s)", self.config.crawl_mode, ",".join(self.config.viewports))

        evidence = EvidenceCollector(self.config.output_dir)
        evidence.init()

        if self.runner is not None:
            results, requested = await self._scan(self.runner, evidence)
        else:
            async with BrowserRunner(
                headless=self.config.headless,
                timeout=self.config.timeout,
                user_agent=self.config.user_agent,
            ) as runner:
                results, requested = await self._scan(runner, evidence)

        end = datetime.now(timezone.utc)
        output = aggregate_results(
            results,
            pages_requested=requested,
            start=start,
            end=end,
            artifacts=ScanArtifacts(output_dir=str(self.config.output_dir)),
        )
        write_reports(output, self.config.output_dir, self.config.output_formats)
        logger.info(
            "Scan finished in %s: %d pages, %d findings, %d errors",
            output.summary.scan_duration,
            output.summary.pages_scanned,
            output.summary.total_findings,
            len(output.summary.errors),
        )
        return output

    async def _scan(self, runner: Any, evidence: EvidenceCollector) -> tuple[list, int]:
        urls = await self.discover_urls(runner)
        logger.info("Discovered %d URLs", len(urls))
        jobs = build_job_matrix(urls, resolve_viewports(self.config.viewports))
        scheduler = ScanScheduler.from_config(self.config, runner, self.analyzers, evidence)
        results = await scheduler.run(jobs)
        return results, len(urls)

    async def discover_urls(self, runner: Any) -> List[str]:
        """URL-адреса для сканирования согласно crawl_mode, без дубликатов и не больше max_pages."""
        cfg = self.config
        seeds = cfg.seed_urls
        if cfg.crawl_mode == "sitemap":
            urls: List[str] = []
            async with SitemapDiscoverer(
                max_urls=cfg.max_pages,
                allow_domains=cfg.allow_domains,
                deny_patterns=cfg.deny_patterns,
                user_agent=cfg.user_agent,
            ) as discoverer:
                for seed in seeds:
                    urls.extend(await discoverer.discover(seed))
        elif cfg.crawl_mode == "bfs":
            urls = []
            crawler = BfsCrawler(
                max_pages=cfg.max_pages,
                max_depth=cfg.max_depth,
                allow_domains=cfg.allow_domains,
                deny_patterns=cfg.deny_patterns,
                respect_robots_txt=cfg.respect_robots_txt,
                same_domain_only=cfg.same_domain_only,
                nav_timeout=cfg.timeout,
                user_agent=cfg.user_agent,
            )
            async with runner.isolated_page(VIEWPORT_PRESETS["desktop"], cfg.locale) as page:
                for seed in seeds:
                    crawler.reset()
                    urls.extend(await crawler.crawl(seed, page))
        else:
            urls = list(seeds)
        return remove_duplicates(urls)[: cfg.max_pages]

    def start_scan(self) -> ScanOutput:
        """Синхронная обёртка над run() для вызова вне event loop."""
        return asyncio.run(self.run())


async def start_scan(config: ScanConfig) -> ScanOutput:
    """Корутина, которую вызывает CLI."""
    return await Engine(config).run()
