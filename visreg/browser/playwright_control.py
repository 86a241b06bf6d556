"""Playwright-backed implementation of the browser control interface."""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import Any, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from visreg.browser.control import BrowserControl
from visreg.browser.launch import create_context, launch_browser
from visreg.models.config import Viewport

logger = logging.getLogger(__name__)


class PlaywrightBrowserControl(BrowserControl):
    """Owns one Playwright browser, context and page.

    Use as an async context manager::

        async with PlaywrightBrowserControl("chromium") as control:
            engine = CaptureEngine(control)
    """

    def __init__(
        self,
        engine: str = "chromium",
        viewport: Viewport | None = None,
        headless: bool = True,
        user_agent: Optional[str] = None,
        navigation_timeout_ms: int = 30000,
    ):
        self.engine = engine
        self.viewport = viewport or Viewport()
        self.headless = headless
        self.user_agent = user_agent
        self.navigation_timeout_ms = navigation_timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def start(self) -> None:
        """Launch the browser and open the page used for captures."""
        if self._page is not None:
            return
        self._playwright = await async_playwright().start()
        logger.debug("Launching %s (headless=%s)...", self.engine, self.headless)
        try:
            self._browser = await launch_browser(self._playwright, self.engine, self.headless)
            self._context = await create_context(self._browser, self.viewport, self.user_agent)
            self._page = await self._context.new_page()
            self._page.set_default_navigation_timeout(self.navigation_timeout_ms)
        except Exception:
            # __aexit__ never runs when __aenter__ fails; release the driver here
            try:
                await self.close()
            except Exception as e:
                logger.warning("Cleanup after failed launch also failed: %s", e)
            raise
        logger.info("Browser control ready (%s)", self.engine)

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("browser not started")
        return self._page

    def is_available(self) -> bool:
        return self._page is not None and not self._page.is_closed()

    async def navigate(self, url: str) -> None:
        resp = await self.page.goto(url, wait_until="domcontentloaded")
        if resp and resp.status >= 400:
            logger.warning("HTTP %d for %s", resp.status, url)
        try:
            await self.page.wait_for_load_state("networkidle", timeout=10000)
        except Exception:
            # Long-polling pages never go idle; the DOM is already loaded
            logger.debug("Network did not go idle for %s", url)

    async def resize(self, width: int, height: int) -> None:
        await self.page.set_viewport_size({"width": width, "height": height})

    async def screenshot(
        self,
        selector: Optional[str] = None,
        full_page: bool = False,
        format: str = "png",
        quality: Optional[int] = None,
        disable_animations: bool = False,
    ) -> bytes:
        kwargs: dict[str, Any] = {"type": format}
        if disable_animations:
            kwargs["animations"] = "disabled"
        if format == "jpeg" and quality is not None:
            kwargs["quality"] = quality
        if selector:
            return await self.page.locator(selector).first.screenshot(**kwargs)
        return await self.page.screenshot(full_page=full_page, **kwargs)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        if arg is None:
            return await self.page.evaluate(script)
        return await self.page.evaluate(script, arg)

    async def wait_for(
        self,
        time_ms: Optional[int] = None,
        text: Optional[str] = None,
        text_gone: Optional[str] = None,
    ) -> None:
        if text is not None:
            await self.page.get_by_text(text).first.wait_for(state="visible")
        if text_gone is not None:
            await self.page.get_by_text(text_gone).first.wait_for(state="hidden")
        if time_ms:
            await self.page.wait_for_timeout(time_ms)

    async def click(self, selector: str) -> None:
        await self.page.click(selector)

    async def hover(self, selector: str) -> None:
        await self.page.hover(selector)

    async def close(self) -> None:
        """Tear down page, context, browser and the Playwright driver.

        Every step runs even when an earlier one fails; the failure still propagates.
        """
        context, browser, driver = self._context, self._browser, self._playwright
        self._page = None
        self._context = None
        self._browser = None
        self._playwright = None
        try:
            if context is not None:
                await context.close()
        finally:
            try:
                if browser is not None:
                    await browser.close()
            finally:
                if driver is not None:
                    await driver.stop()

    async def install(self) -> None:
        proc = await asyncio.create_subprocess_exec(
            sys.executable, "-m", "playwright", "install", self.engine,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            raise RuntimeError(
                f"playwright install {self.engine} failed: {stderr.decode(errors='replace').strip()}"
            )
        logger.info("Installed browser binaries for %s", self.engine)
