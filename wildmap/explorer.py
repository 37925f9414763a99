# ABOUTME: UI orchestrator wiring user actions (map click, locate, search, add entry) to services.
# ABOUTME: Handlers update an ExplorerState of on-screen fields; network calls come in as injected ports.

import logging
import math
from collections.abc import Awaitable, Callable

from pydantic import BaseModel

from wildmap.errors import InputError, PermissionDenied, TransportError
from wildmap.map_view import FOCUS_ZOOM, MapViewController
from wildmap.models import Annotation, Coordinate, ForecastSnapshot, Kind, Place, SubmitResult

logger = logging.getLogger(__name__)

ForecastPort = Callable[[float, float], Awaitable[ForecastSnapshot]]
GeocodePort = Callable[[str], Awaitable[Place | None]]
SubmitPort = Callable[[dict], Awaitable[SubmitResult]]
LocatePort = Callable[[], Awaitable[Coordinate]]

MISSING = "N/A"
ADD_ENTRY_HINT = "❌ Please click a map location and enter species."


class Readings(BaseModel):
    """Display strings for the weather and air-quality panel."""

    temp: str = ""
    humidity: str = ""
    precip: str = ""
    wind: str = ""
    uv: str = ""
    sun: str = ""
    aq: str = ""


class ExplorerState(BaseModel):
    """Everything the control panel shows, plus the add-entry form fields."""

    status: str = ""
    alert: str = ""
    address: str = ""
    entry_kind: str = Kind.ANIMAL.value
    species_input: str = ""
    note_input: str = ""
    lat_input: str = ""
    lon_input: str = ""
    add_status: str = ""
    location_name: str = ""
    readings: Readings = Readings()


def _num(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def _with_unit(value, unit: str) -> str:
    return f"{_num(value)} {unit}" if value is not None else MISSING


def format_readings(snapshot: ForecastSnapshot) -> Readings:
    """Render a snapshot into the panel's display strings."""
    if snapshot.windspeed is not None:
        wind = f"{_num(snapshot.windspeed)} km/h ({_num(snapshot.winddirection)}°)"
    else:
        wind = MISSING
    return Readings(
        temp=_with_unit(snapshot.temperature, "°C"),
        humidity=_with_unit(snapshot.humidity, "%"),
        precip=_with_unit(snapshot.precipitation, "mm"),
        wind=wind,
        uv=_num(snapshot.uv_index) if snapshot.uv_index is not None else MISSING,
        sun=f"{snapshot.sunrise} / {snapshot.sunset}",
        aq=f"PM2.5: {_with_unit(snapshot.pm2_5, 'µg/m³')} — PM10: {_with_unit(snapshot.pm10, 'µg/m³')}",
    )


def parse_coordinate_text(text: str) -> float | None:
    """Parse a coordinate form field; None unless it is a finite number."""
    try:
        value = float(text)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


class Explorer:
    """Handlers for each explorer UI action.

    The map view is owned here; forecast, geocoding and submission are async
    callables so the handlers run without a browser or network.
    """

    def __init__(
        self,
        map_view: MapViewController,
        fetch_forecast: ForecastPort,
        resolve_place: GeocodePort,
        submit_entry: SubmitPort,
    ) -> None:
        self.map_view = map_view
        self.fetch_forecast = fetch_forecast
        self.resolve_place = resolve_place
        self.submit_entry = submit_entry
        self.state = ExplorerState()
        self._forecast_token = 0

    def _begin(self, status: str | None = None) -> None:
        self.state.alert = ""
        if status is not None:
            self.state.status = status

    async def on_map_click(self, latitude: float, longitude: float) -> None:
        self._begin()
        self.map_view.set_selection(latitude, longitude)
        self.state.lat_input = f"{latitude:.6f}"
        self.state.lon_input = f"{longitude:.6f}"
        await self.show_forecast(latitude, longitude)

    async def on_use_my_location(self, locate: LocatePort) -> None:
        """Ask the device for its position and focus the map there."""
        self._begin("Locating...")
        try:
            position = await locate()
        except PermissionDenied as e:
            self.state.alert = f"Location error: {e}"
            self.state.status = ""
            return
        self._focus(position.latitude, position.longitude)
        await self.show_forecast(position.latitude, position.longitude)

    async def on_search(self, query: str) -> None:
        self._begin()
        self.state.address = query
        query = query.strip()
        if not query:
            self.state.alert = "Please enter a place name or address."
            return

        self.state.status = "Finding location..."
        try:
            place = await self.resolve_place(query)
        except (TransportError, InputError) as e:
            logger.exception("Geocoding failed for %r", query)
            self.state.status = "Error finding place. See log for details."
            self.state.alert = f"Error finding place: {e}"
            return
        if place is None:
            self.state.status = "Location not found."
            return

        self._focus(place.latitude, place.longitude)
        if await self.show_forecast(place.latitude, place.longitude):
            self.state.status = f"Found: {place.label}"

    def update_form(self, **fields: str) -> None:
        """Copy add-entry form values (entry_kind, species_input, ...) into the state."""
        for name, value in fields.items():
            if name not in ("entry_kind", "species_input", "note_input", "lat_input", "lon_input"):
                raise ValueError(f"Unknown form field: {name}")
            setattr(self.state, name, "" if value is None else str(value))

    async def on_add_entry(self) -> None:
        """Submit the add-entry form and draw the new marker on success."""
        self._begin()
        species = self.state.species_input.strip()
        note = self.state.note_input.strip()
        lat = parse_coordinate_text(self.state.lat_input)
        lon = parse_coordinate_text(self.state.lon_input)
        if not species or lat is None or lon is None:
            self.state.add_status = ADD_ENTRY_HINT
            return

        kind = self.state.entry_kind
        try:
            result = await self.submit_entry({"type": kind, "species": species, "note": note, "lat": lat, "lon": lon})
        except TransportError:
            logger.exception("Saving %s entry failed", kind)
            self.state.add_status = "⚠️ Error saving entry."
            return

        self.state.add_status = result.message
        if result.ok:
            self.map_view.add_annotation(Kind(kind), Annotation(species=species, note=note, latitude=lat, longitude=lon))

    async def show_forecast(self, latitude: float, longitude: float) -> bool:
        """Fetch and display the forecast for a coordinate.

        Returns False when the result was an error or was superseded by a newer fetch.
        """
        self._forecast_token += 1
        token = self._forecast_token
        self.state.status = "Fetching data..."
        try:
            snapshot = await self.fetch_forecast(latitude, longitude)
        except TransportError as e:
            if token == self._forecast_token:
                logger.exception("Forecast fetch failed for %.4f, %.4f", latitude, longitude)
                self.state.status = f"Data fetch error: {e}"
            return False
        if token != self._forecast_token:
            logger.debug("Discarding stale forecast for %.4f, %.4f", latitude, longitude)
            return False

        self.state.location_name = f"Lat: {latitude:.4f}, Lon: {longitude:.4f} ({snapshot.timezone or ''})"
        self.state.readings = format_readings(snapshot)
        self.state.status = "Updated"
        return True

    def _focus(self, latitude: float, longitude: float) -> None:
        self.map_view.set_view(latitude, longitude, FOCUS_ZOOM)
        self.map_view.set_selection(latitude, longitude)
