"""
Dashboard page routes.

Each page view is one render cycle of the search synchronizer: the session is
bootstrapped from the URL the first time it is seen, and pages that need
shareable URLs are redirected to the canonical query string of the current
search. Unknown paths land on the dashboard.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from gapwatch.api.navigation import RequestNavigation
from gapwatch.api.v1.shared.dependencies import (
    attach_session_cookie,
    get_date_range,
    get_session_registry,
)
from gapwatch.core.config import Settings, get_settings
from gapwatch.core.metrics import record_page_view
from gapwatch.core.pages import DEFAULT_PAGE, find_page
from gapwatch.models.search import PageView
from gapwatch.services.search_session import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)


def _redirect_to_dashboard() -> RedirectResponse:
    return RedirectResponse(DEFAULT_PAGE.key, status_code=302)


@router.get("/")
async def root() -> RedirectResponse:
    return _redirect_to_dashboard()


@router.get("/{page_path:path}")
async def render_page(
    page_path: str,
    request: Request,
    registry: SessionRegistry = Depends(get_session_registry),
    settings: Settings = Depends(get_settings),
    date_range: tuple[date, date] = Depends(get_date_range),
) -> Response:
    if page_path.startswith("api/"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    page = find_page(f"/{page_path}")
    if page is None:
        return _redirect_to_dashboard()

    navigation = RequestNavigation(request)
    session = await registry.get_or_create(
        request.cookies.get(settings.session_cookie_name), navigation
    )

    record_page_view(page.name)
    logger.info("Page view %s (query: %s)", request.url.path, request.url.query or "-")

    if session.synchronizer.sync(navigation):
        response: Response = RedirectResponse(navigation.replaced_url, status_code=302)
    else:
        await session.route_resolver.ensure(*date_range)
        view = PageView(
            page=page.key,
            label=page.label,
            search_params_required=page.search_params_required,
            search=session.search,
        )
        response = JSONResponse(view.model_dump(mode="json", by_alias=True))

    attach_session_cookie(response, session.session_id, settings)
    return response
