"""Browser automation: the render pool and the rendered-page capability."""

from __future__ import annotations

from webharvest.browser.pool import PooledBrowser, RenderPool, is_browser_closed_error
from webharvest.browser.renderer import (
    PageRenderer,
    PlaywrightRenderer,
    RenderError,
    RenderOptions,
)

__all__ = [
    "PageRenderer",
    "PlaywrightRenderer",
    "PooledBrowser",
    "RenderError",
    "RenderOptions",
    "RenderPool",
    "is_browser_closed_error",
]
