import asyncio
import io
import logging
from typing import Optional

from PIL import Image
from playwright.async_api import Error as PlaywrightError, async_playwright

from schooldash.config import Settings, settings
from schooldash.errors import RenderPipelineError

logger = logging.getLogger(__name__)

BATTERY_HEADER = "X-Battery-Level"

HIDE_SCROLLBARS_CSS = """
    ::-webkit-scrollbar {
      display: none !important;
    }
    * {
      -ms-overflow-style: none !important;
      scrollbar-width: none !important;
    }
"""


async def capture_screenshot(
    battery_level: str,
    html: Optional[str] = None,
    url: Optional[str] = None,
    config: Settings = settings,
) -> bytes:
    """
    Screenshot the dashboard in headless Chromium

    Exactly one of ``html`` (render in-process) or ``url`` (navigate to the
    internal HTML route) must be given. The browser is closed on every path.

    Returns:
        Color PNG clipped to the display size

    Raises:
        RenderPipelineError on navigation timeout, a failing page or a browser error
    """
    if (html is None) == (url is None):
        raise ValueError("pass either html or url")

    width, height = config.dashboard_width, config.dashboard_height
    timeout_ms = config.navigation_timeout * 1000

    try:
        async with async_playwright() as p:
            browser = await p.chromium.launch()
            try:
                page = await browser.new_page(viewport={"width": width, "height": height})
                await page.set_extra_http_headers({BATTERY_HEADER: battery_level})

                if url is not None:
                    logger.info(f"Navigating to {url}")
                    response = await page.goto(url, wait_until="networkidle", timeout=timeout_ms)
                    if response is None or not response.ok:
                        status = response.status if response is not None else "no response"
                        raise RenderPipelineError(f"dashboard page returned {status}")
                else:
                    await page.set_content(html, wait_until="networkidle", timeout=timeout_ms)

                await page.add_style_tag(content=HIDE_SCROLLBARS_CSS)
                return await page.screenshot(
                    type="png",
                    clip={"x": 0, "y": 0, "width": width, "height": height},
                )
            finally:
                await browser.close()
    except (PlaywrightError, asyncio.TimeoutError) as e:
        raise RenderPipelineError(f"screenshot failed: {e}")


def luminosity(r: int, g: int, b: int) -> int:
    """0.299R + 0.587G + 0.114B, halves rounded up"""
    return int(0.299 * r + 0.587 * g + 0.114 * b + 0.5)


def to_grayscale_png(png_bytes: bytes) -> bytes:
    """
    Convert a color PNG into an 8-bit single-channel PNG without alpha

    Raises:
        RenderPipelineError if the input cannot be decoded or the output encoded
    """
    try:
        with Image.open(io.BytesIO(png_bytes)) as image:
            rgba = image.convert("RGBA")

        raw = rgba.tobytes()
        gray = bytes(
            luminosity(r, g, b) for r, g, b in zip(raw[0::4], raw[1::4], raw[2::4])
        )

        output = io.BytesIO()
        Image.frombytes("L", rgba.size, gray).save(output, format="PNG")
        return output.getvalue()

    except (OSError, SyntaxError, ValueError) as e:
        raise RenderPipelineError(f"grayscale conversion failed: {e}")
