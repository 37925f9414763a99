# ABOUTME: Service layer for the Open-Meteo forecast/air-quality APIs and Nominatim place search.
# ABOUTME: Fetches both forecast sources concurrently and normalizes them into a ForecastSnapshot.

import asyncio

import httpx

from wildmap.errors import InputError, TransportError
from wildmap.models import ForecastSnapshot, Place

GEOCODING_URL = "https://nominatim.openstreetmap.org/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
AIR_QUALITY_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"

HOURLY_PARAMS = "temperature_2m,relativehumidity_2m,precipitation,windspeed_10m,winddirection_10m,uv_index"
AIR_QUALITY_PARAMS = "pm10,pm2_5"
DAILY_PARAMS = "sunrise,sunset"


async def geocode(client: httpx.AsyncClient, query: str, email: str) -> Place | None:
    """Resolve a place name to its first Nominatim hit, or None when nothing matches."""
    query = query.strip()
    if not query:
        raise InputError("Please enter a place name or address.")

    resp = await _get(
        client,
        GEOCODING_URL,
        "Geocode",
        params={"format": "json", "q": query, "limit": 1, "email": email},
    )
    data = _json(resp, "Geocode")
    if not isinstance(data, list) or not data:
        return None

    r = data[0]
    try:
        return Place(latitude=float(r["lat"]), longitude=float(r["lon"]), label=r.get("display_name", query))
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise TransportError(f"Geocode fetch failed: malformed result {r!r}") from e


async def get_forecast_snapshot(client: httpx.AsyncClient, latitude: float, longitude: float) -> ForecastSnapshot:
    """Fetch weather and air quality for a coordinate and merge them into one snapshot.

    Both requests are issued together. If either fails, no partial snapshot is returned.
    """
    weather_resp, air_resp = await asyncio.gather(
        _get(
            client,
            FORECAST_URL,
            "Weather",
            params={
                "latitude": latitude,
                "longitude": longitude,
                "hourly": HOURLY_PARAMS,
                "current_weather": "true",
                "daily": DAILY_PARAMS,
                "timezone": "auto",
            },
        ),
        _get(
            client,
            AIR_QUALITY_URL,
            "Air quality",
            params={
                "latitude": latitude,
                "longitude": longitude,
                "hourly": AIR_QUALITY_PARAMS,
                "timezone": "auto",
            },
        ),
    )
    return build_snapshot(_json(weather_resp, "Weather"), _json(air_resp, "Air quality"))


def build_snapshot(weather: dict, air_quality: dict) -> ForecastSnapshot:
    """Pick display values out of raw Open-Meteo forecast and air-quality payloads.

    Temperature and wind prefer current conditions and fall back to the first hourly
    sample. Humidity, precipitation and UV always use the first hourly sample.
    PM2.5/PM10 use the last hourly sample. Sunrise/sunset default to "N/A".
    """
    current = weather.get("current_weather") or {}
    hourly = weather.get("hourly") or {}
    daily = weather.get("daily") or {}
    aq_hourly = air_quality.get("hourly") or {}

    return ForecastSnapshot(
        timezone=weather.get("timezone"),
        temperature=_prefer(current, "temperature", hourly, "temperature_2m"),
        windspeed=_prefer(current, "windspeed", hourly, "windspeed_10m"),
        winddirection=_prefer(current, "winddirection", hourly, "winddirection_10m"),
        humidity=_get_at(hourly, "relativehumidity_2m", 0),
        precipitation=_get_at(hourly, "precipitation", 0),
        uv_index=_get_at(hourly, "uv_index", 0),
        sunrise=_get_at(daily, "sunrise", 0) or "N/A",
        sunset=_get_at(daily, "sunset", 0) or "N/A",
        pm2_5=_get_at(aq_hourly, "pm2_5", -1),
        pm10=_get_at(aq_hourly, "pm10", -1),
    )


async def _get(client: httpx.AsyncClient, url: str, label: str, params: dict) -> httpx.Response:
    """GET a URL, turning network errors and non-2xx statuses into TransportError."""
    try:
        resp = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise TransportError(f"{label} fetch failed: {e}") from e
    if not resp.is_success:
        raise TransportError(
            f"{label} fetch failed: {resp.status_code} {resp.reason_phrase}",
            status_code=resp.status_code,
            reason=resp.reason_phrase,
        )
    return resp


def _json(resp: httpx.Response, label: str):
    try:
        return resp.json()
    except ValueError as e:
        raise TransportError(f"{label} fetch failed: response is not JSON") from e


def _prefer(current: dict, key: str, hourly: dict, hourly_key: str):
    """Current-conditions value if present, else the first hourly sample."""
    value = current.get(key)
    if value is None:
        return _get_at(hourly, hourly_key, 0)
    return value


def _get_at(data: dict, key: str, index: int):
    """Safely get value at index from a column array, returning None if missing."""
    col = data.get(key)
    if not col:
        return None
    if index >= len(col) or index < -len(col):
        return None
    return col[index]
