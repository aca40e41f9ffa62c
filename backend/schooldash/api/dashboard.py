from fastapi import APIRouter, Header, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from typing import Optional
import logging

from schooldash.config import settings
from schooldash.errors import InsufficientDataError
from schooldash.services.dashboard import build_dashboard_html, render_dashboard_png

logger = logging.getLogger(__name__)

router = APIRouter()


def _battery_level(header_value: Optional[str]) -> str:
    return header_value if header_value else settings.default_battery_level


@router.get("/dashboard")
async def get_dashboard_image(
    request: Request,
    x_battery_level: Optional[str] = Header(None),
):
    """
    Dashboard screenshot for the e-ink display

    Returns:
        8-bit grayscale PNG, or 500 if any stage of the pipeline failed
    """
    battery_level = _battery_level(x_battery_level)
    logger.info(f"Dashboard image requested (battery={battery_level})")

    image = await render_dashboard_png(battery_level, str(request.base_url))
    if image is None:
        return PlainTextResponse("Could not create dash image", status_code=500)

    return Response(
        content=image,
        media_type="image/png",
        headers={"Cache-Control": "no-cache"},
    )


@router.get("/internal/dashboard", response_class=HTMLResponse)
async def get_dashboard_html(x_battery_level: Optional[str] = Header(None)):
    """
    Dashboard as a self-contained HTML document

    Also the page the screenshot pipeline navigates to in "url" render mode.
    """
    battery_level = _battery_level(x_battery_level)

    try:
        html = await build_dashboard_html(battery_level)
    except InsufficientDataError as e:
        logger.error(f"Not enough upstream data to render dashboard: {e}")
        html = None

    if html is None:
        return PlainTextResponse("Could not render dashboard", status_code=500)

    return HTMLResponse(html)
