"""Tests for URL and selector utilities."""

import re

import pytest

from visreg.url_utils import is_safe_selector, is_valid_url, screenshot_name


class TestIsValidUrl:
    @pytest.mark.parametrize("url", [
        "https://example.com",
        "http://localhost:3000/path?q=1",
        "file:///tmp/page.html",
        "about:blank",
        "data:text/html,<p>hi</p>",
    ])
    def test_accepts(self, url):
        assert is_valid_url(url) is True

    @pytest.mark.parametrize("url", [
        "", "   ", "example.com", "https://", "ftp://example.com",
        "javascript:alert(1)", "https://exa mple.com", "http://[::1",
    ])
    def test_rejects(self, url):
        assert is_valid_url(url) is False


class TestIsSafeSelector:
    @pytest.mark.parametrize("selector", [
        "#hero", ".card > .title", "ul li:nth-child(2)", "a[href^='https']", "div + p ~ span",
    ])
    def test_accepts(self, selector):
        assert is_safe_selector(selector) is True

    @pytest.mark.parametrize("selector", [
        "", "  ", "<img src=x>", "a[href='javascript:alert(1)']", "div[onmouseover = x]",
        "p { color: red }", "div; drop", "x`y`", "div[style*=expression(alert(1))]",
    ])
    def test_rejects(self, selector):
        assert is_safe_selector(selector) is False


class TestScreenshotName:
    def test_format(self):
        name = screenshot_name("https://www.example.com/page", 1280, 720)
        assert re.fullmatch(r"www\.example\.com_1280x720_\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}", name)

    def test_unknown_host(self):
        assert screenshot_name("about:blank", 10, 10).startswith("unknown_10x10_")
