from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger
from pydantic import BaseModel, Field

from config import Configuration
from errors import (
    AddressNotFound,
    GeolocationError,
    InvalidTransition,
    NoCandidatesAfterFilter,
    ProviderUnavailable,
    RouletteError,
    SelectionBusy,
)
from models import SearchCenter, Venue
from services.candidate_search import resolve_center, search_candidates
from services.filters import default_meal_time
from services.geocoding import resolve_address
from services.report import build_shortlist_report, build_venue_card, maps_search_url, summary_line
from services.selection import SelectionStatus
from services.session import RouletteSession, SessionManager
from services.variants import VARIANTS, VariantConfig, get_variant

load_dotenv()

app = FastAPI(title="Restaurant Roulette")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

session_manager = SessionManager(ttl_sec=Configuration.from_env().session_ttl)

_STATUS_CODES: Tuple[Tuple[type, int], ...] = (
    (AddressNotFound, 404),
    (ProviderUnavailable, 503),
    (NoCandidatesAfterFilter, 422),
    (GeolocationError, 400),
    (SelectionBusy, 409),
    (InvalidTransition, 409),
)


def _http_error(exc: RouletteError) -> HTTPException:
    status = next((code for cls, code in _STATUS_CODES if isinstance(exc, cls)), 500)
    detail: Dict[str, Any] = {"error": type(exc).__name__, "message": exc.message, "detail": exc.detail}
    if isinstance(exc, ProviderUnavailable):
        detail["reasons"] = exc.reasons
    return HTTPException(status_code=status, detail=detail)


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


class GeocodeRequest(BaseModel):
    address: str = Field(..., min_length=1, description="Free-text address or landmark")


class SearchRequest(BaseModel):
    variant: str = Field("daytime", description="Variant preset name")
    address: Optional[str] = Field(None, description="Typed address; ignored for fixed-location variants")
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)
    geolocation_error: Optional[int] = Field(None, description="W3C geolocation error code reported by the client")
    people: Optional[int] = Field(None, description="Party size")
    radius_m: Optional[float] = Field(None, gt=0)
    meal_time: Optional[str] = Field(None, description="Target time as HH:MM")
    provider: Optional[str] = Field(None, description="osm or google; defaults to the variant's provider")

    def has_location(self) -> bool:
        return bool(self.address) or (self.lat is not None and self.lng is not None) or self.geolocation_error is not None


class SpinRequest(SearchRequest):
    variant: Optional[str] = Field(None, description="Variant preset name; keeps the session's variant when omitted")
    refresh: bool = Field(False, description="Search again even when the session already has candidates")


class PointPayload(BaseModel):
    lat: float
    lng: float


class CenterPayload(BaseModel):
    point: PointPayload
    label: Optional[str] = None
    address: Optional[str] = None
    fixed: bool = False


class VenuePayload(BaseModel):
    id: str
    name: str
    lat: float
    lng: float
    distance_m: float
    category: str
    cuisine: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    opening_hours: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    source: str
    tags: List[str] = []
    summary: str
    maps_url: str


class GeocodeResponse(BaseModel):
    point: PointPayload
    formatted_address: str


class SearchResponse(BaseModel):
    variant: str
    center: CenterPayload
    radius_m: float
    people: Optional[int] = None
    meal_time: Optional[str] = None
    venues: List[VenuePayload]
    report_markdown: str


class SessionPayload(BaseModel):
    session_id: str
    variant: str
    state: str
    candidate_count: int = 0
    current: Optional[VenuePayload] = None
    final: Optional[VenuePayload] = None
    center: Optional[CenterPayload] = None
    error: Optional[str] = None


class SpinResponse(BaseModel):
    session: SessionPayload
    previews: List[str]
    final: VenuePayload
    card_markdown: str


def _venue_payload(v: Venue) -> VenuePayload:
    return VenuePayload(
        id=v.id,
        name=v.name,
        lat=v.location.lat,
        lng=v.location.lng,
        distance_m=round(v.distance_m, 1),
        category=v.category.value,
        cuisine=v.cuisine,
        address=v.address,
        phone=v.phone,
        website=v.website,
        opening_hours=v.opening_hours_text,
        rating=v.rating,
        price_level=v.price_level,
        source=v.source,
        tags=list(v.tags),
        summary=summary_line(v),
        maps_url=maps_search_url(v),
    )


def _center_payload(center: SearchCenter) -> CenterPayload:
    return CenterPayload(
        point=PointPayload(lat=center.point.lat, lng=center.point.lng),
        label=center.label,
        address=center.address,
        fixed=center.fixed,
    )


def _session_payload(session: RouletteSession) -> SessionPayload:
    engine = session.engine
    return SessionPayload(
        session_id=session.session_id,
        variant=session.variant.name,
        state=engine.state.value,
        candidate_count=len(engine.candidates or ()),
        current=_venue_payload(engine.current) if engine.current else None,
        final=_venue_payload(engine.final) if engine.final else None,
        center=_center_payload(session.center) if session.center else None,
        error=engine.error.message if engine.error else None,
    )


def _variant_for(req: SearchRequest, name: Optional[str] = None) -> VariantConfig:
    try:
        variant = get_variant(name or req.variant or "daytime")
    except KeyError as exc:
        raise HTTPException(status_code=400, detail=exc.args[0])
    if req.provider and req.provider != variant.provider:
        if req.provider not in ("osm", "google"):
            raise HTTPException(status_code=400, detail=f"unknown provider {req.provider!r}")
        variant = variant.model_copy(update={"provider": req.provider})
    return variant


def _search(cfg: Configuration, variant: VariantConfig, req: SearchRequest) -> Tuple[SearchCenter, List[Venue]]:
    center = resolve_center(
        cfg,
        variant,
        address=req.address,
        lat=req.lat,
        lng=req.lng,
        geolocation_error=req.geolocation_error,
    )
    venues = search_candidates(
        cfg,
        variant,
        center,
        people=req.people,
        meal_time=req.meal_time,
        radius_m=req.radius_m,
    )
    return center, venues


def _refresh_candidates(cfg: Configuration, session: RouletteSession, variant: VariantConfig, req: SearchRequest) -> None:
    engine = session.engine
    if engine.state == SelectionStatus.FAILED:
        engine.restart()
    token = engine.begin_search()
    try:
        center, venues = _search(cfg, variant, req)
    except RouletteError as exc:
        engine.fail_search(token, exc)
        raise
    except Exception as exc:
        engine.fail_search(token, RouletteError(str(exc)))
        raise
    session.center = center
    session.people = req.people
    session.meal_time = req.meal_time
    engine.complete_search(token, venues)


def _spin(cfg: Configuration, session_id: str, req: SpinRequest) -> SpinResponse:
    existing = session_manager.get(session_id)
    name = req.variant or (existing.variant.name if existing else None)
    variant = _variant_for(req, name)
    session = session_manager.open(session_id, variant)
    engine = session.engine

    needs_search = req.refresh or req.has_location() or not engine.candidates
    if needs_search:
        _refresh_candidates(cfg, session, variant, req)

    previews = engine.reroll() if engine.state == SelectionStatus.SELECTED else engine.start()
    names = [venue.name for venue in previews]
    final = engine.final
    if final is None:
        raise InvalidTransition("spin ended without a final pick")
    session_manager.record_pick(session_id, final)
    return SpinResponse(
        session=_session_payload(session),
        previews=names,
        final=_venue_payload(final),
        card_markdown=build_venue_card(final, session.center, session.people, session.meal_time),
    )


@app.get("/healthz")
def healthz() -> dict:
    cfg = Configuration.from_env()
    logger.info("cfg: {}", cfg.log_summary())
    return {"status": "ok"}


@app.get("/variants")
def list_variants() -> dict:
    out = []
    for variant in VARIANTS.values():
        buckets = variant.people_buckets.buckets if variant.people_buckets else []
        out.append(
            {
                "name": variant.name,
                "label": variant.label,
                "categories": [c.value for c in variant.categories],
                "radius_m": variant.radius_m,
                "provider": variant.provider,
                "default_people": variant.default_people,
                "fixed_center": _center_payload(variant.fixed_center).model_dump() if variant.fixed_center else None,
                "people_buckets": [
                    {"name": b.name, "min": b.min_people, "max": b.max_people} for b in buckets
                ],
                "animation_ms": variant.animation_ms,
                "tick_ms": variant.tick_ms,
            }
        )
    return {"variants": out, "suggested_meal_time": default_meal_time()}


@app.post("/geocode", response_model=GeocodeResponse)
async def geocode(req: GeocodeRequest) -> GeocodeResponse:
    cfg = Configuration.from_env()
    try:
        result = await asyncio.to_thread(resolve_address, cfg, req.address)
    except RouletteError as exc:
        raise _http_error(exc)
    except Exception as exc:
        logger.exception("geocode failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")
    return GeocodeResponse(
        point=PointPayload(lat=result.point.lat, lng=result.point.lng),
        formatted_address=result.formatted_address,
    )


@app.post("/search", response_model=SearchResponse)
async def search(req: SearchRequest) -> SearchResponse:
    cfg = Configuration.from_env()
    variant = _variant_for(req)
    try:
        center, venues = await asyncio.to_thread(_search, cfg, variant, req)
    except RouletteError as exc:
        raise _http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("search failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")

    radius = req.radius_m or variant.radius_m
    return SearchResponse(
        variant=variant.name,
        center=_center_payload(center),
        radius_m=radius,
        people=req.people if req.people is not None else variant.default_people,
        meal_time=req.meal_time,
        venues=[_venue_payload(v) for v in venues],
        report_markdown=build_shortlist_report(venues, center, radius),
    )


@app.post("/sessions/{session_id}/spin", response_model=SpinResponse)
async def spin(session_id: str, req: Optional[SpinRequest] = None) -> SpinResponse:
    cfg = Configuration.from_env()
    try:
        return await asyncio.to_thread(_spin, cfg, session_id, req or SpinRequest())
    except HTTPException:
        raise
    except RouletteError as exc:
        raise _http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except Exception as exc:
        logger.exception("spin failed: {}", exc)
        raise HTTPException(status_code=500, detail="internal error")


@app.post("/sessions/{session_id}/spin-stream")
async def spin_stream(session_id: str, req: Optional[SpinRequest] = None):
    """
    SSE endpoint that paces the roulette previews at the variant's tick rate.
    Emits one `preview` event per tick, then a `final` event with the venue card.
    """
    cfg = Configuration.from_env()
    req = req or SpinRequest()
    existing = session_manager.get(session_id)
    variant = _variant_for(req, req.variant or (existing.variant.name if existing else None))
    session = session_manager.open(session_id, variant)

    try:
        if req.refresh or req.has_location() or not session.engine.candidates:
            await asyncio.to_thread(_refresh_candidates, cfg, session, variant, req)
        engine = session.engine
        previews = engine.reroll() if engine.state == SelectionStatus.SELECTED else engine.start()
    except RouletteError as exc:
        raise _http_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    async def event_generator():
        tick = variant.tick_ms / 1000.0
        try:
            for idx, venue in enumerate(previews):
                event = {"type": "preview", "index": idx, "name": venue.name, "summary": summary_line(venue)}
                yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"
                await asyncio.sleep(tick)
        finally:
            # a dropped client must not leave the session animating
            if engine.state == SelectionStatus.ANIMATING:
                engine.finish()

        final = engine.final
        if final is None:
            yield 'data: {"type":"error","message":"spin interrupted"}\n\n'
            return
        session_manager.record_pick(session_id, final)
        event = {
            "type": "final",
            "venue": _venue_payload(final).model_dump(),
            "card_markdown": build_venue_card(final, session.center, session.people, session.meal_time),
        }
        yield f"data: {json.dumps(event, ensure_ascii=False)}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


def _require_session(session_id: str) -> RouletteSession:
    session = session_manager.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"unknown session {session_id!r}")
    return session


@app.post("/sessions/{session_id}/reroll", response_model=SpinResponse)
def reroll(session_id: str) -> SpinResponse:
    session = _require_session(session_id)
    engine = session.engine
    try:
        names = [venue.name for venue in engine.reroll()]
    except RouletteError as exc:
        raise _http_error(exc)
    final = engine.final
    if final is None:
        raise _http_error(InvalidTransition("reroll ended without a final pick"))
    session_manager.record_pick(session_id, final)
    return SpinResponse(
        session=_session_payload(session),
        previews=names,
        final=_venue_payload(final),
        card_markdown=build_venue_card(final, session.center, session.people, session.meal_time),
    )


@app.post("/sessions/{session_id}/restart", response_model=SessionPayload)
def restart(session_id: str) -> SessionPayload:
    session = _require_session(session_id)
    session.engine.restart()
    session.center = None
    return _session_payload(session)


@app.get("/sessions/{session_id}", response_model=SessionPayload)
def session_state(session_id: str) -> SessionPayload:
    return _session_payload(_require_session(session_id))


@app.delete("/sessions/{session_id}")
def drop_session(session_id: str) -> dict:
    session_manager.reset(session_id)
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8010, reload=True)
