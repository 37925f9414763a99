# ABOUTME: Map view controller owning base layers, annotation overlays, and the selection marker.
# ABOUTME: Keeps all mutable map state in one object and renders it to a folium (Leaflet) map.

import html
import logging
from dataclasses import dataclass

import folium
from branca.element import MacroElement
from jinja2 import Template
from pydantic import ValidationError

from wildmap.models import Annotation, Coordinate, Kind

logger = logging.getLogger(__name__)

DEFAULT_CENTER = Coordinate(latitude=52.507259, longitude=13.329013)
DEFAULT_ZOOM = 13
FOCUS_ZOOM = 12


@dataclass(frozen=True)
class TileStyle:
    url: str
    attribution: str
    max_zoom: int


BASE_LAYERS: dict[str, TileStyle] = {
    "OpenStreetMap": TileStyle(
        "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "© OpenStreetMap contributors",
        19,
    ),
    "Satellite (Esri)": TileStyle(
        "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        "Tiles © Esri",
        19,
    ),
    "Topo Map": TileStyle(
        "https://{s}.tile.opentopomap.org/{z}/{x}/{y}.png",
        "Map data: © OpenStreetMap contributors, SRTM | Map style: © OpenTopoMap",
        17,
    ),
    "Gray Map (Carto Light)": TileStyle(
        "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
        '&copy; <a href="https://carto.com/attributions">CARTO</a> | © OpenStreetMap contributors',
        19,
    ),
}

OVERLAY_NAMES = {
    Kind.ANIMAL: "Animal Sightings",
    Kind.TREE: "Tree Mapping",
}


@dataclass(frozen=True)
class MarkerStyle:
    emoji: str
    icon_url: str
    icon_size: int


MARKER_STYLES = {
    Kind.ANIMAL: MarkerStyle("🦊", "https://openmoji.org/data/color/svg/1F98A.svg", 30),
    Kind.TREE: MarkerStyle("🌳", "https://openmoji.org/data/color/svg/1F332.svg", 36),
}
ICON_ANCHOR = (12, 12)


class FrontendBinding(MacroElement):
    """Hands the rendered Leaflet map object to the explorer frontend script."""

    _template = Template(
        """
        {% macro script(this, kwargs) %}
            if (typeof wildmapBind === "function") {
                wildmapBind({{ this._parent.get_name() }});
            }
        {% endmacro %}
        """
    )

    def __init__(self):
        super().__init__()
        self._name = "FrontendBinding"


def popup_html(kind: Kind, annotation: Annotation) -> str:
    """Hover popup body: kind emoji, species, note, and the coordinate to 4 decimals."""
    style = MARKER_STYLES[Kind(kind)]
    return (
        f"<b>{style.emoji} {html.escape(annotation.species)}</b><br>"
        f"{html.escape(annotation.note or '')}<br>"
        f"<small>{annotation.latitude:.4f}, {annotation.longitude:.4f}</small>"
    )


class MapViewController:
    """Interactive map state: one base layer, two toggleable overlays, one selection marker."""

    def __init__(
        self,
        center: Coordinate = DEFAULT_CENTER,
        zoom: int = DEFAULT_ZOOM,
        base_layer: str = "OpenStreetMap",
    ) -> None:
        if base_layer not in BASE_LAYERS:
            raise ValueError(f"Unknown base layer: {base_layer}")
        self.center = center
        self.zoom = zoom
        self.base_layer = base_layer
        self.visible_overlays: set[Kind] = set(Kind)
        self.overlays: dict[Kind, list[Annotation]] = {kind: [] for kind in Kind}
        self.selection = center
        self._loaded = False

    def load_annotations(self, store) -> None:
        """Populate both overlays from the store's full contents. Runs once."""
        if self._loaded:
            logger.debug("Annotation overlays already loaded, skipping")
            return
        for kind in Kind:
            try:
                self.overlays[kind] = list(store.load_all(kind))
            except (OSError, ValueError, ValidationError):
                logger.exception("Error loading %s annotations, leaving the overlay empty", kind.value)
                self.overlays[kind] = []
        self._loaded = True
        logger.info(
            "Loaded %d animal and %d tree annotations",
            len(self.overlays[Kind.ANIMAL]),
            len(self.overlays[Kind.TREE]),
        )

    def add_annotation(self, kind: Kind, annotation: Annotation) -> None:
        self.overlays[Kind(kind)].append(annotation)

    def set_selection(self, latitude: float, longitude: float) -> None:
        """Replace the selection marker. There is only ever one."""
        self.selection = Coordinate(latitude=latitude, longitude=longitude)

    def set_view(self, latitude: float, longitude: float, zoom: int = FOCUS_ZOOM) -> None:
        self.center = Coordinate(latitude=latitude, longitude=longitude)
        self.zoom = zoom

    def select_base_layer(self, name: str) -> None:
        """Switch base tiles. Exactly one base layer is visible at a time."""
        if name not in BASE_LAYERS:
            raise ValueError(f"Unknown base layer: {name}")
        self.base_layer = name

    def set_overlay_visible(self, kind: Kind, visible: bool) -> None:
        if visible:
            self.visible_overlays.add(Kind(kind))
        else:
            self.visible_overlays.discard(Kind(kind))

    def render(self) -> folium.Map:
        """Build a folium map reflecting the current state."""
        m = folium.Map(
            location=[self.center.latitude, self.center.longitude],
            zoom_start=self.zoom,
            tiles=None,
        )
        for name, style in BASE_LAYERS.items():
            folium.TileLayer(
                tiles=style.url,
                attr=style.attribution,
                name=name,
                max_zoom=style.max_zoom,
                overlay=False,
                control=True,
                show=name == self.base_layer,
            ).add_to(m)

        for kind in Kind:
            group = folium.FeatureGroup(name=OVERLAY_NAMES[kind], show=kind in self.visible_overlays)
            for annotation in self.overlays[kind]:
                self._annotation_marker(kind, annotation).add_to(group)
            group.add_to(m)

        folium.Marker(
            location=[self.selection.latitude, self.selection.longitude],
            tooltip="Selected point",
        ).add_to(m)

        folium.LayerControl(collapsed=False).add_to(m)
        FrontendBinding().add_to(m)
        return m

    def _annotation_marker(self, kind: Kind, annotation: Annotation) -> folium.Marker:
        style = MARKER_STYLES[kind]
        # Leaflet tooltips open on pointer-enter and close on pointer-leave.
        return folium.Marker(
            location=[annotation.latitude, annotation.longitude],
            icon=folium.CustomIcon(
                icon_image=style.icon_url,
                icon_size=(style.icon_size, style.icon_size),
                icon_anchor=ICON_ANCHOR,
            ),
            tooltip=folium.Tooltip(popup_html(kind, annotation)),
        )
