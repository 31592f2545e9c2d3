# === FILE: ui_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска сканера UIScout через командную строку.

Команды:
  scan      Найти страницы, просканировать их во всех viewport и сохранить отчёт
  config    Показать итоговую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Команда scan опции:
  --url URL           Стартовый URL (можно несколько раз)
  --crawl-mode MODE   single | sitemap | bfs | journey
  --max-pages N       Лимит страниц
  --max-depth N       Глубина BFS
  --viewport LIST     Список viewport через запятую (desktop,tablet,mobile)
  --concurrency N     Число одновременно открытых контекстов браузера
  --output DIR        Каталог для findings.json и скриншотов
  --specs FILE        Файл пользовательских правил (JSON/YAML)
  --format FMT        Формат отчёта (можно несколько раз)
  --scan-timeout SEC  Таймаут всего сканирования (секунд)

Коды выхода: 0 без критичных находок, 1 при наличии critical, 2 при ошибке настройки.

Пример:
  ui-scout scan --url https://example.com --crawl-mode bfs --viewport desktop,mobile
"""
import sys
import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

import click
from pydantic import ValidationError

from ui_scout import __version__
from ui_scout.config import ScanConfig, load_config
from ui_scout.engine import start_scan
from ui_scout.exceptions import ConfigError
from ui_scout.logger import DEFAULT_FORMAT, init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help"])

EXIT_CRITICAL = 1
EXIT_SETUP_ERROR = 2


def print_error(message: str, code: int = EXIT_SETUP_ERROR):
    click.secho(message, fg='red', err=True)
    sys.exit(code)


def _build_config(base: Optional[ScanConfig], overrides: Dict[str, Any]) -> ScanConfig:
    if base is not None:
        return base.with_overrides(**overrides)
    data = {k: v for k, v in overrides.items() if v is not None}
    try:
        return ScanConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f'Некорректные параметры: {exc}') from exc


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='UIScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд UIScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    cfg = None
    try:
        cfg = load_config(config_path)
    except FileNotFoundError:
        if config_path is not None:
            print_error(f'Файл конфигурации не найден: {config_path}')
    except ConfigError as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('scan', context_settings=CONTEXT_SETTINGS)
@click.option('--url', '-u', 'urls', multiple=True, help='Стартовый URL (можно несколько раз)')
@click.option(
    '--crawl-mode', 'crawl_mode',
    default=None,
    type=click.Choice(['single', 'sitemap', 'bfs', 'journey']),
    help='Режим поиска страниц'
)
@click.option('--max-pages', 'max_pages', type=int, default=None, help='Лимит страниц (override max_pages)')
@click.option('--max-depth', 'max_depth', type=int, default=None, help='Глубина обхода ссылок')
@click.option('--viewport', 'viewports', default=None, help='Viewport через запятую: desktop,tablet,mobile')
@click.option('--concurrency', type=int, default=None, help='Число параллельных контекстов')
@click.option(
    '--output', '-o', 'output_dir',
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help='Каталог для отчётов и скриншотов'
)
@click.option(
    '--specs', 'specs',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Файл пользовательских правил (JSON/YAML)'
)
@click.option(
    '--format', 'formats',
    multiple=True,
    type=click.Choice(['json', 'sarif']),
    help='Формат отчёта (можно несколько раз)'
)
@click.option(
    '--scan-timeout', 'scan_timeout',
    type=float,
    default=None,
    help='Таймаут всего сканирования (секунд)'
)
@click.pass_context
def scan(ctx, urls, crawl_mode, max_pages, max_depth, viewports, concurrency, output_dir, specs, formats, scan_timeout):
    """Запустить сканирование и сохранить отчёт."""
    overrides = {
        'start_urls': list(urls) or None,
        'crawl_mode': crawl_mode,
        'max_pages': max_pages,
        'max_depth': max_depth,
        'viewports': [v.strip() for v in viewports.split(',') if v.strip()] if viewports else None,
        'concurrency': concurrency,
        'output_dir': str(output_dir) if output_dir else None,
        'custom_specs': str(specs) if specs else None,
        'output_formats': list(formats) or None,
    }
    try:
        cfg = _build_config(ctx.obj['config'], overrides)
    except ConfigError as e:
        print_error(f'Ошибка конфигурации: {e}')

    click.echo(f'Starting scan: {", ".join(cfg.seed_urls)} ({cfg.crawl_mode})')
    try:
        if scan_timeout:
            output = asyncio.run(
                asyncio.wait_for(start_scan(cfg), timeout=scan_timeout)
            )
        else:
            output = asyncio.run(start_scan(cfg))
    except ConfigError as e:
        print_error(f'Ошибка конфигурации: {e}')
    except asyncio.TimeoutError:
        print_error(f'Сканирование не завершено за {scan_timeout} секунд')
    except Exception as e:
        print_error(f'Ошибка при сканировании: {e}')

    summary = output.summary
    click.echo(
        f'Scanned {summary.pages_scanned}/{summary.pages_requested} pages '
        f'in {summary.scan_duration}: {summary.total_findings} findings, {len(summary.errors)} errors'
    )
    for severity, count in summary.findings_by_severity.items():
        if count:
            click.echo(f'  {severity}: {count}')
    for name in output.artifacts.reports.values():
        click.echo(f'Report: {Path(cfg.output_dir) / name}')

    if output.has_critical:
        click.secho('Critical findings detected', fg='red', err=True)
        sys.exit(EXIT_CRITICAL)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    if cfg is None:
        print_error('Конфигурация не задана: укажите --config или создайте configs/default.yaml')
    click.echo(cfg.model_dump_json(indent=2, by_alias=True))


if __name__ == "__main__":
    cli()
