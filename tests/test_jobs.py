# File: tests/test_jobs.py
import pytest

from ui_scout.jobs import build_job_matrix
from ui_scout.models import VIEWPORT_PRESETS, resolve_viewports


def test_matrix_is_url_major():
    viewports = resolve_viewports(["desktop", "mobile"])
    jobs = build_job_matrix(["https://a.test/1", "https://a.test/2"], viewports)
    assert [(j.url, j.viewport.name) for j in jobs] == [
        ("https://a.test/1", "desktop"),
        ("https://a.test/1", "mobile"),
        ("https://a.test/2", "desktop"),
        ("https://a.test/2", "mobile"),
    ]


def test_matrix_deduplicates_urls_and_is_pure():
    urls = ["https://a.test/1", "https://a.test/2", "https://a.test/1"]
    viewports = resolve_viewports(["tablet"])
    first = build_job_matrix(urls, viewports)
    assert len(first) == 2
    assert build_job_matrix(urls, viewports) == first
    assert urls == ["https://a.test/1", "https://a.test/2", "https://a.test/1"]


def test_empty_inputs():
    assert build_job_matrix([], resolve_viewports(["desktop"])) == []
    assert build_job_matrix(["https://a.test/"], []) == []


def test_viewport_presets():
    mobile = VIEWPORT_PRESETS["mobile"]
    assert (mobile.width, mobile.height) == (375, 812)
    assert mobile.is_mobile and mobile.has_touch
    assert VIEWPORT_PRESETS["tablet"].has_touch and not VIEWPORT_PRESETS["tablet"].is_mobile
    desktop = VIEWPORT_PRESETS["desktop"]
    assert (desktop.width, desktop.height) == (1920, 1080)
    assert not desktop.is_mobile and not desktop.has_touch
    with pytest.raises(KeyError):
        resolve_viewports(["watch"])
