"""Remote browser control interface used by the capture engine.

The capture engine only talks to this capability. The production variant
drives Playwright (see ``playwright_control``); tests inject scripted fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class BrowserControl(ABC):
    """Primitive browser operations the capture engine sequences."""

    async def __aenter__(self) -> "BrowserControl":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def start(self) -> None:
        """Acquire the underlying browser; a no-op for controls that need no setup."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the control can accept commands right now."""

    @abstractmethod
    async def navigate(self, url: str) -> None: ...

    @abstractmethod
    async def resize(self, width: int, height: int) -> None: ...

    @abstractmethod
    async def screenshot(
        self,
        selector: Optional[str] = None,
        full_page: bool = False,
        format: str = "png",
        quality: Optional[int] = None,
        disable_animations: bool = False,
    ) -> bytes:
        """Capture the page (or one element) and return encoded raster bytes.

        With ``disable_animations`` the control freezes CSS animations and
        transitions for the shot; otherwise they are captured mid-flight.
        """

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    @abstractmethod
    async def wait_for(
        self,
        time_ms: Optional[int] = None,
        text: Optional[str] = None,
        text_gone: Optional[str] = None,
    ) -> None: ...

    @abstractmethod
    async def click(self, selector: str) -> None: ...

    @abstractmethod
    async def hover(self, selector: str) -> None: ...

    @abstractmethod
    async def close(self) -> None: ...

    @abstractmethod
    async def install(self) -> None:
        """Install the browser binaries the control depends on."""
