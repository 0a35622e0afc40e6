"""Read-only JSON endpoints over the committed ranking sections.

Every endpoint reads the store once and serializes what it got; there is
no formatting beyond turning Decimals into strings. A section that has
never been committed answers 503 with ``{"status": "loading"}`` so
consumers can tell "still loading" apart from an empty table.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from movers.exceptions import SectionNotReadyError
from movers.market_data.timeframes import Timeframe, parse_timeframe
from movers.store import MarketDataStore, RankingView

router = APIRouter()


def _decimal_to_str(obj: Any) -> Any:
    """Recursively convert Decimal values to strings for JSON serialization."""
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, dict):
        return {k: _decimal_to_str(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_decimal_to_str(item) for item in obj]
    return obj


def _view_response(view: RankingView, **extra: Any) -> JSONResponse:
    content = {
        "status": "ok",
        "updated_at": view.updated_at,
        "entries": [_decimal_to_str(dataclasses.asdict(e)) for e in view.entries],
        **extra,
    }
    return JSONResponse(content=content)


def _loading(error: SectionNotReadyError) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"status": "loading", "section": error.section, "detail": str(error)},
    )


def _not_found(detail: str) -> JSONResponse:
    return JSONResponse(status_code=404, content={"status": "error", "detail": detail})


def _store(request: Request) -> MarketDataStore:
    return request.app.state.store


def _timeframe(value: str) -> Timeframe | None:
    try:
        return parse_timeframe(value)
    except ValueError:
        return None


@router.get("/gainers/{timeframe}")
async def get_gainers(request: Request, timeframe: str) -> JSONResponse:
    """Top gainers for a timeframe, best first."""
    tf = _timeframe(timeframe)
    if tf is None:
        return _not_found(f"unknown timeframe {timeframe}")
    try:
        view = _store(request).top_gainers(tf)
    except SectionNotReadyError as e:
        return _loading(e)
    return _view_response(view, timeframe=tf.value)


@router.get("/losers/{timeframe}")
async def get_losers(request: Request, timeframe: str) -> JSONResponse:
    """Top losers for a timeframe, most negative first."""
    tf = _timeframe(timeframe)
    if tf is None:
        return _not_found(f"unknown timeframe {timeframe}")
    try:
        view = _store(request).top_losers(tf)
    except SectionNotReadyError as e:
        return _loading(e)
    return _view_response(view, timeframe=tf.value)


@router.get("/volume/{direction}/{timeframe}")
async def get_volume(request: Request, direction: str, timeframe: str) -> JSONResponse:
    """Highest-turnover contracts moving up (gaining) or down (losing)."""
    tf = _timeframe(timeframe)
    if tf is None:
        return _not_found(f"unknown timeframe {timeframe}")
    if direction not in ("gaining", "losing"):
        return _not_found(f"unknown direction {direction}")

    store = _store(request)
    try:
        view = store.volume_gaining(tf) if direction == "gaining" else store.volume_losing(tf)
    except SectionNotReadyError as e:
        return _loading(e)
    return _view_response(view, timeframe=tf.value, direction=direction)


@router.get("/funding/{sign}")
async def get_funding(request: Request, sign: str) -> JSONResponse:
    """Most positive or most negative funding rates."""
    if sign not in ("positive", "negative"):
        return _not_found(f"unknown funding side {sign}")

    store = _store(request)
    try:
        view = store.funding_positive() if sign == "positive" else store.funding_negative()
    except SectionNotReadyError as e:
        return _loading(e)
    return _view_response(view, side=sign)


@router.get("/exclusions")
async def get_exclusions(request: Request) -> JSONResponse:
    """Base assets currently suppressed from the volume tables."""
    try:
        section = _store(request).volume_section()
    except SectionNotReadyError as e:
        return _loading(e)
    return JSONResponse(content={
        "status": "ok",
        "updated_at": section.updated_at,
        "excluded": sorted(section.excluded),
    })


@router.get("/status")
async def get_status(request: Request) -> JSONResponse:
    """Readiness and age of each section."""
    return JSONResponse(content=_store(request).status())
