# File: tests/test_cli.py
"""Тесты для CLI (`ui_scout/cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `scan`, `config`, `--version`, коды выхода и обработку ошибок.
"""
import asyncio
import importlib
import json
import types
from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

from ui_scout.aggregator import aggregate_results
from ui_scout.cli import cli
from ui_scout.exceptions import ConfigError
from ui_scout.models import PageScanResult, ScanJob, Severity, VIEWPORT_PRESETS

# the package re-exports the click group as ``ui_scout.cli``; patch the module itself
cli_module = importlib.import_module("ui_scout.cli")

NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Без configs/default.yaml в рабочем каталоге."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def captured(monkeypatch, make_finding):
    """Патчим start_scan: запоминаем конфиг и возвращаем заданные находки."""
    state = {"config": None, "severity": Severity.MEDIUM}

    async def fake_scan(cfg):
        state["config"] = cfg
        job = ScanJob(cfg.seed_urls[0], VIEWPORT_PRESETS[cfg.viewports[0]])
        results = [PageScanResult(job=job, findings=[make_finding(page_url=job.url, severity=state["severity"])])]
        return aggregate_results(results, pages_requested=1, start=NOW, end=NOW)

    monkeypatch.setattr(cli_module, "start_scan", fake_scan)
    return state


def test_patch_target_is_the_cli_module():
    assert isinstance(cli_module, types.ModuleType)
    assert cli_module.cli is cli


def write_config(tmp_path, data) -> str:
    cfg_file = tmp_path / "config.json"
    cfg_file.write_text(json.dumps(data), encoding="utf-8")
    return str(cfg_file)


def test_version_option():
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "UIScout, version" in result.output


def test_show_config(tmp_path):
    cfg_file = write_config(tmp_path, {"start_urls": ["https://example.com"], "max_pages": 7})
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "--config", cfg_file, "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["start_urls"] == ["https://example.com/"]
    assert data["max_pages"] == 7


def test_show_config_without_file():
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "config"])
    assert result.exit_code == 2


def test_scan_with_flags_only(captured):
    result = CliRunner().invoke(
        cli,
        [
            "--log-level", "ERROR",
            "scan",
            "--url", "https://example.com",
            "--url", "https://example.com/about",
            "--crawl-mode", "bfs",
            "--max-pages", "5",
            "--max-depth", "1",
            "--viewport", "desktop, mobile",
            "--concurrency", "2",
            "--output", "out",
            "--format", "json",
        ],
    )
    assert result.exit_code == 0, result.output
    cfg = captured["config"]
    assert cfg.seed_urls == ["https://example.com/", "https://example.com/about"]
    assert cfg.crawl_mode == "bfs"
    assert (cfg.max_pages, cfg.max_depth, cfg.concurrency) == (5, 1, 2)
    assert cfg.viewports == ["desktop", "mobile"]
    assert str(cfg.output_dir) == "out"
    assert "Scanned 1/1 pages" in result.output
    assert "medium: 1" in result.output


def test_flags_override_config_file(tmp_path, captured):
    cfg_file = write_config(
        tmp_path, {"start_urls": ["https://example.com"], "max_pages": 40, "viewports": ["tablet"]}
    )
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "--config", cfg_file, "scan", "--max-pages", "3"])
    assert result.exit_code == 0, result.output
    cfg = captured["config"]
    assert cfg.max_pages == 3
    assert cfg.viewports == ["tablet"]


def test_exit_code_one_on_critical(captured):
    captured["severity"] = Severity.CRITICAL
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "scan", "--url", "https://example.com"])
    assert result.exit_code == 1
    assert "Critical findings detected" in result.output


@pytest.mark.parametrize(
    "args",
    [
        ["scan"],
        ["scan", "--url", "not-a-url"],
        ["scan", "--url", "https://example.com", "--viewport", "watch"],
        ["scan", "--url", "https://example.com", "--max-pages", "0"],
        ["scan", "--url", "https://example.com", "--format", "markdown"],
    ],
)
def test_setup_errors_exit_two(captured, args):
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", *args])
    assert result.exit_code == 2
    assert captured["config"] is None


def test_invalid_config_file_exits_two(tmp_path):
    cfg_file = write_config(tmp_path, {"start_urls": []})
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "--config", cfg_file, "config"])
    assert result.exit_code == 2
    assert "Ошибка загрузки конфигурации" in result.output


def test_config_error_during_scan_exits_two(monkeypatch):
    async def broken(cfg):
        raise ConfigError("Analyzer 'x:y' not found")

    monkeypatch.setattr(cli_module, "start_scan", broken)
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "scan", "--url", "https://example.com"])
    assert result.exit_code == 2
    assert "x:y" in result.output


def test_scan_timeout(monkeypatch):
    async def slow(cfg):
        await asyncio.sleep(2)

    monkeypatch.setattr(cli_module, "start_scan", slow)
    result = CliRunner().invoke(
        cli, ["--log-level", "ERROR", "scan", "--url", "https://example.com", "--scan-timeout", "0.1"]
    )
    assert result.exit_code == 2
    assert "не завершено" in result.output
