"""Browser launch helpers — deterministic Playwright browsers and contexts for capture."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright

from visreg.models.config import BROWSER_ENGINES, Viewport

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)

_CHROMIUM_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--font-render-hinting=none",
    "--disable-font-subpixel-positioning",
    "--hide-scrollbars",
]

_DETERMINISTIC_INIT_SCRIPT = """
// Hide the blinking text caret so focused inputs render identically
document.addEventListener('DOMContentLoaded', () => {
    const style = document.createElement('style');
    style.setAttribute('data-visreg', 'caret');
    style.textContent = '* { caret-color: transparent !important; }';
    document.head.appendChild(style);
});
"""


async def launch_browser(playwright: Playwright, engine: str = "chromium", headless: bool = True) -> Browser:
    """Launch the requested browser engine with rendering-stability arguments."""
    if engine not in BROWSER_ENGINES:
        raise ValueError(f"Unknown browser engine: {engine}")
    browser_type = getattr(playwright, engine)
    if engine == "chromium":
        return await browser_type.launch(headless=headless, args=_CHROMIUM_ARGS)
    return await browser_type.launch(headless=headless)


async def create_context(
    browser: Browser,
    viewport: Viewport,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create a browser context pinned to a fixed locale, timezone and motion setting."""
    context_kwargs: dict = {
        "viewport": {"width": viewport.width, "height": viewport.height},
        "device_scale_factor": viewport.device_scale_factor,
        "user_agent": user_agent or DEFAULT_USER_AGENT,
        "locale": "en-US",
        "timezone_id": "UTC",
        "reduced_motion": "reduce",
        "color_scheme": "light",
    }
    # Firefox rejects is_mobile
    if viewport.is_mobile and browser.browser_type.name != "firefox":
        context_kwargs["is_mobile"] = True
        context_kwargs["has_touch"] = True

    context = await browser.new_context(**context_kwargs)
    await context.add_init_script(_DETERMINISTIC_INIT_SCRIPT)
    return context
