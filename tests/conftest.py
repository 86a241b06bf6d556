"""Pytest configuration and shared fixtures."""

import io
import struct
import zlib
from typing import Any, Optional

import pytest
from PIL import Image

from visreg.browser.control import BrowserControl
from visreg.capture import scripts
from visreg.models.config import Viewport
from visreg.models.screenshot import Dimensions, Screenshot, ScreenshotMetadata
from visreg.raster import content_hash, encode_data_url


# ============================================================================
# Raster Fixtures
# ============================================================================


def _png(width: int, height: int, color=(255, 255, 255, 255), patches=()) -> bytes:
    img = Image.new("RGBA", (width, height), color)
    for x, y, w, h, fill in patches:
        img.paste(fill, (x, y, x + w, y + h))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def png_factory():
    """Build PNG bytes: png_factory(w, h, color, patches=[(x, y, w, h, rgba), ...])."""
    return _png


def _png_header_only(width: int, height: int) -> bytes:
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    chunk = b"IHDR" + ihdr
    return b"\x89PNG\r\n\x1a\n" + struct.pack(">I", len(ihdr)) + chunk + struct.pack(">I", zlib.crc32(chunk))


@pytest.fixture
def oversized_png() -> bytes:
    """A tiny PNG whose header claims 20000x20000 pixels (past Pillow's bomb limit)."""
    return _png_header_only(20000, 20000)


@pytest.fixture
def screenshot_factory():
    """Wrap PNG bytes into a Screenshot."""

    def _make(data: bytes, shot_id: str = "shot_test", name: str = "test") -> Screenshot:
        img = Image.open(io.BytesIO(data))
        return Screenshot(
            id=shot_id,
            name=name,
            url="https://example.com",
            viewport=Viewport(width=img.width, height=img.height),
            timestamp="2026-01-01T00:00:00Z",
            raster_data=encode_data_url(data, "image/png"),
            metadata=ScreenshotMetadata(
                file_size=len(data),
                dimensions=Dimensions(width=img.width, height=img.height),
                content_hash=content_hash(data),
            ),
        )

    return _make


# ============================================================================
# Browser Control Fixtures
# ============================================================================


class FakeBrowserControl(BrowserControl):
    """Scripted browser control that records every primitive call."""

    def __init__(
        self,
        available: bool = True,
        element_exists: bool = True,
        navigate_errors: Optional[list[Exception]] = None,
        screenshot_errors: Optional[list[Exception]] = None,
        fail_widths: Optional[set[int]] = None,
        raster: Optional[bytes] = None,
        user_agent: str = "FakeAgent/1.0",
    ):
        self.available = available
        self.element_exists = element_exists
        self.navigate_errors = list(navigate_errors or [])
        self.screenshot_errors = list(screenshot_errors or [])
        self.fail_widths = fail_widths or set()
        self.raster = raster or _png(4, 3, (10, 20, 30, 255))
        self.user_agent = user_agent
        self.calls: list[tuple[str, Any]] = []
        self.width = 0
        self.started = False
        self.closed = False

    def calls_to(self, name: str) -> list:
        return [args for call, args in self.calls if call == name]

    def is_available(self) -> bool:
        return self.available

    async def start(self) -> None:
        self.started = True

    async def navigate(self, url: str) -> None:
        self.calls.append(("navigate", url))
        if self.navigate_errors:
            raise self.navigate_errors.pop(0)

    async def resize(self, width: int, height: int) -> None:
        self.calls.append(("resize", (width, height)))
        self.width = width

    async def screenshot(self, selector=None, full_page=False, format="png", quality=None,
                         disable_animations=False) -> bytes:
        self.calls.append(("screenshot", {"selector": selector, "full_page": full_page,
                                          "format": format, "quality": quality,
                                          "disable_animations": disable_animations}))
        if self.screenshot_errors:
            raise self.screenshot_errors.pop(0)
        if self.width in self.fail_widths:
            raise RuntimeError("Target closed: browser has crashed")
        return self.raster

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.calls.append(("evaluate", (script, arg)))
        if script == scripts.ELEMENT_EXISTS:
            return self.element_exists
        if script == scripts.USER_AGENT:
            return self.user_agent
        return None

    async def wait_for(self, time_ms=None, text=None, text_gone=None) -> None:
        self.calls.append(("wait_for", time_ms))

    async def click(self, selector: str) -> None:
        self.calls.append(("click", selector))

    async def hover(self, selector: str) -> None:
        self.calls.append(("hover", selector))

    async def close(self) -> None:
        self.closed = True

    async def install(self) -> None:
        self.calls.append(("install", None))


@pytest.fixture
def fake_control() -> FakeBrowserControl:
    return FakeBrowserControl()


@pytest.fixture
def control_factory():
    """Build FakeBrowserControl instances with custom scripting."""
    return FakeBrowserControl


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
