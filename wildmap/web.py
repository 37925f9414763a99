# ABOUTME: ASGI web entry point for the map explorer.
# ABOUTME: Serves the explorer page, POST /add, annotation data files, UI event endpoints, and static assets.

import contextlib
import html
import logging
from functools import partial
from pathlib import Path

from branca.element import Element, JavascriptLink
from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles

from wildmap.annotations import AnnotationService
from wildmap.config import load_settings
from wildmap.deps import ExplorerDeps, create_deps
from wildmap.errors import InputError, PermissionDenied
from wildmap.explorer import Explorer, ExplorerState
from wildmap.map_view import BASE_LAYERS, OVERLAY_NAMES, MapViewController
from wildmap.models import Coordinate, Kind
from wildmap.weather_service import geocode, get_forecast_snapshot

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).parent / "static"

_PANEL_TEMPLATE = """
<style>
  #panel {{ position: absolute; top: 10px; left: 60px; z-index: 1000; width: 320px;
           background: rgba(255, 255, 255, 0.95); padding: 10px; border-radius: 6px;
           font: 13px sans-serif; box-shadow: 0 1px 4px rgba(0, 0, 0, 0.3); }}
  #panel input, #panel select {{ width: 100%; box-sizing: border-box; margin: 2px 0; }}
  #panel h4 {{ margin: 8px 0 4px; }}
</style>
<div id="panel">
  <h4>Find a place</h4>
  <input id="address" placeholder="Place name or address" value="{address}">
  <button id="geocodeBtn">Search</button>
  <button id="useLocationBtn">Use my location</button>
  <div id="status">{status}</div>
  <h4 id="locationName">{location_name}</h4>
  <div>Temperature: <span id="temp">{temp}</span></div>
  <div>Humidity: <span id="humidity">{humidity}</span></div>
  <div>Precipitation: <span id="precip">{precip}</span></div>
  <div>Wind: <span id="wind">{wind}</span></div>
  <div>UV index: <span id="uv">{uv}</span></div>
  <div>Sunrise / sunset: <span id="sun">{sun}</span></div>
  <div>Air quality: <span id="aq">{aq}</span></div>
  <h4>Add entry</h4>
  <select id="entryType">{kind_options}</select>
  <input id="speciesInput" placeholder="Species" value="{species}">
  <input id="noteInput" placeholder="Note" value="{note}">
  <input id="latInput" placeholder="Latitude" value="{lat}">
  <input id="lonInput" placeholder="Longitude" value="{lon}">
  <button id="addBtn">Add entry</button>
  <div id="addStatus">{add_status}</div>
  <div id="alert" hidden>{alert}</div>
</div>
"""


def panel_html(state: ExplorerState) -> str:
    """Control panel markup filled in from the current explorer state."""
    esc = html.escape
    kind_options = "".join(
        f'<option value="{kind.value}"{" selected" if kind.value == state.entry_kind else ""}>{kind.value.title()}</option>'
        for kind in Kind
    )
    return _PANEL_TEMPLATE.format(
        address=esc(state.address),
        status=esc(state.status),
        location_name=esc(state.location_name),
        temp=esc(state.readings.temp),
        humidity=esc(state.readings.humidity),
        precip=esc(state.readings.precip),
        wind=esc(state.readings.wind),
        uv=esc(state.readings.uv),
        sun=esc(state.readings.sun),
        aq=esc(state.readings.aq),
        kind_options=kind_options,
        species=esc(state.species_input),
        note=esc(state.note_input),
        lat=esc(state.lat_input),
        lon=esc(state.lon_input),
        add_status=esc(state.add_status),
        alert=esc(state.alert),
    )


def render_page(explorer: Explorer) -> str:
    """Full explorer page: the folium map plus the control panel and frontend script."""
    m = explorer.map_view.render()
    root = m.get_root()
    root.header.add_child(JavascriptLink("/static/explorer.js"), name="explorer_js")
    root.html.add_child(Element(panel_html(explorer.state)), name="panel")
    return root.render()


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError as e:
        raise InputError("Request body must be valid JSON") from e
    if not isinstance(body, dict):
        raise InputError("Request body must be a JSON object")
    return body


def _read_coordinate(body: dict) -> Coordinate:
    try:
        return Coordinate(latitude=body["lat"], longitude=body["lon"])
    except (KeyError, ValidationError) as e:
        raise InputError("lat and lon must be numbers") from e


def create_app(deps: ExplorerDeps) -> Starlette:
    """Wire the store, services, and explorer into a Starlette application."""
    service = AnnotationService(deps.store)
    map_view = MapViewController()
    map_view.load_annotations(deps.store)

    async def submit_entry(payload: dict):
        return await run_in_threadpool(service.submit, payload)

    explorer = Explorer(
        map_view=map_view,
        fetch_forecast=partial(get_forecast_snapshot, deps.http_client),
        resolve_place=lambda query: geocode(deps.http_client, query, deps.settings.nominatim_email),
        submit_entry=submit_entry,
    )

    def state_response() -> JSONResponse:
        return JSONResponse(explorer.state.model_dump())

    async def index(request: Request) -> HTMLResponse:
        page = render_page(explorer)
        # Alerts pop up once; a reload must not repeat them.
        explorer.state.alert = ""
        return HTMLResponse(page)

    async def add(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            return JSONResponse({"message": "❌ Invalid or missing fields: body must be valid JSON"}, status_code=400)
        result = await run_in_threadpool(service.submit, body)
        if result.ok and result.annotation is not None:
            map_view.add_annotation(result.kind, result.annotation)
        return JSONResponse({"message": result.message}, status_code=result.status)

    def collection(kind: Kind):
        async def endpoint(request: Request) -> JSONResponse:
            rows = await run_in_threadpool(deps.store.load_all, kind)
            return JSONResponse([row.model_dump(by_alias=True) for row in rows])

        return endpoint

    async def state(request: Request) -> JSONResponse:
        return state_response()

    async def click(request: Request) -> JSONResponse:
        point = _read_coordinate(await _json_body(request))
        await explorer.on_map_click(point.latitude, point.longitude)
        return state_response()

    async def locate(request: Request) -> JSONResponse:
        body = await _json_body(request)

        async def reported_position() -> Coordinate:
            if body.get("error"):
                raise PermissionDenied(str(body["error"]))
            return _read_coordinate(body)

        await explorer.on_use_my_location(reported_position)
        return state_response()

    async def search(request: Request) -> JSONResponse:
        body = await _json_body(request)
        await explorer.on_search(str(body.get("query", "")))
        return state_response()

    async def add_entry(request: Request) -> JSONResponse:
        body = await _json_body(request)
        explorer.update_form(
            entry_kind=body.get("type", Kind.ANIMAL.value),
            species_input=body.get("species", ""),
            note_input=body.get("note", ""),
            lat_input=body.get("lat", ""),
            lon_input=body.get("lon", ""),
        )
        await explorer.on_add_entry()
        return state_response()

    async def layers(request: Request) -> JSONResponse:
        body = await _json_body(request)
        try:
            if "base" in body:
                map_view.select_base_layer(body["base"])
            names_to_kind = {name: kind for kind, name in OVERLAY_NAMES.items()}
            for name, visible in body.get("overlays", {}).items():
                map_view.set_overlay_visible(names_to_kind[name], bool(visible))
        except (KeyError, ValueError, AttributeError) as e:
            raise InputError(f"Unknown layer: {e}") from e
        return JSONResponse(
            {
                "base": map_view.base_layer,
                "base_layers": list(BASE_LAYERS),
                "overlays": {OVERLAY_NAMES[kind]: kind in map_view.visible_overlays for kind in Kind},
            }
        )

    async def input_error(request: Request, exc: InputError) -> JSONResponse:
        return JSONResponse({"message": str(exc)}, status_code=400)

    @contextlib.asynccontextmanager
    async def lifespan(app):
        yield
        await deps.http_client.aclose()

    app = Starlette(
        routes=[
            Route("/", index),
            Route("/add", add, methods=["POST"]),
            Route("/animals.json", collection(Kind.ANIMAL)),
            Route("/trees.json", collection(Kind.TREE)),
            Route("/api/state", state),
            Route("/api/events/click", click, methods=["POST"]),
            Route("/api/events/locate", locate, methods=["POST"]),
            Route("/api/events/search", search, methods=["POST"]),
            Route("/api/events/add", add_entry, methods=["POST"]),
            Route("/api/events/layers", layers, methods=["POST"]),
            Mount("/static", app=StaticFiles(directory=STATIC_DIR), name="static"),
        ],
        exception_handlers={InputError: input_error},
        lifespan=lifespan,
    )
    app.state.deps = deps
    app.state.explorer = explorer
    app.state.service = service
    logger.debug("Explorer app ready with data in %s", deps.store.data_dir)
    return app


app = create_app(create_deps(load_settings()))
