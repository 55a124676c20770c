"""
Land mask for water-only hex routing.

A ``LandMask`` is an immutable, loaded-once set of "land" H3 cells. The
routing oracle only asks it one question: is this cell a hit?

Backing sets, in order of preference:
1. ``BloomCellSet`` - probabilistic (rbloom), compact, may false-positive
2. exact cell lists (JSON / text)
3. ``PolygonLandSet`` - GeoJSON land polygons via shapely.prepared
4. ``GlobeLandSet`` - global-land-mask package (1km raster)

Whether a hit means land or water is decided later by calibration in
``hexroute.routing.land_oracle``; masks built inverted are supported.
"""

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Callable, Container, Dict, Iterable, Optional, Tuple

import h3

logger = logging.getLogger(__name__)

# Calibration probes as (lng, lat): deep continental interior and mid-ocean.
INTERIOR_PROBE = (-100.0, 38.0)  # Kansas
OCEAN_PROBE = (-40.0, 30.0)      # Central North Atlantic

DEFAULT_FALSE_POSITIVE_RATE = 1e-3


# ---------------------------------------------------------------------------
# Probabilistic cell set
# ---------------------------------------------------------------------------

def _cell_hash(cell: str) -> int:
    """Stable 128-bit signed hash so saved filters reload across processes."""
    digest = hashlib.sha256(cell.encode("ascii")).digest()
    return int.from_bytes(digest[:16], "big", signed=True)


class BloomCellSet:
    """Bloom filter of H3 cell ids. No false negatives, tunable false positives."""

    def __init__(self, bloom, count: int = 0, false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE):
        self._bloom = bloom
        self.count = count
        self.false_positive_rate = false_positive_rate

    @classmethod
    def build(
        cls,
        cells: Iterable[str],
        false_positive_rate: float = DEFAULT_FALSE_POSITIVE_RATE,
    ) -> "BloomCellSet":
        from rbloom import Bloom

        cells = list(cells)
        bloom = Bloom(max(len(cells), 1), false_positive_rate, _cell_hash)
        bloom.update(cells)
        logger.info(f"Bloom filter built: {len(cells)} cells, fp rate {false_positive_rate}")
        return cls(bloom, count=len(cells), false_positive_rate=false_positive_rate)

    @classmethod
    def load(cls, path: str) -> "BloomCellSet":
        from rbloom import Bloom

        bloom = Bloom.load(str(path), _cell_hash)
        meta = _read_meta(path)
        return cls(
            bloom,
            count=meta.get("count", 0),
            false_positive_rate=meta.get("false_positive_rate", DEFAULT_FALSE_POSITIVE_RATE),
        )

    def save(self, path: str, resolution: Optional[int] = None) -> None:
        self._bloom.save(str(path))
        _write_meta(path, {
            "count": self.count,
            "false_positive_rate": self.false_positive_rate,
            "resolution": resolution,
        })

    def __contains__(self, cell) -> bool:
        return cell in self._bloom


def _meta_path(path) -> Path:
    return Path(str(path) + ".meta.json")


def _read_meta(path) -> Dict:
    meta_path = _meta_path(path)
    if not meta_path.exists():
        return {}
    return json.loads(meta_path.read_text())


def _write_meta(path, meta: Dict) -> None:
    _meta_path(path).write_text(json.dumps(meta))


# ---------------------------------------------------------------------------
# Point-sampled sets (answer by cell centre)
# ---------------------------------------------------------------------------

class PointLandSet:
    """Cell set defined by a land test on the cell centre."""

    def __init__(self, is_land: Callable[[float, float], bool]):
        self._is_land = is_land

    def is_land_point(self, lat: float, lng: float) -> bool:
        return bool(self._is_land(lat, lng))

    def __contains__(self, cell) -> bool:
        lat, lng = h3.cell_to_latlng(cell)
        return self.is_land_point(lat, lng)


class GlobeLandSet(PointLandSet):
    """global-land-mask 1km raster."""

    def __init__(self):
        from global_land_mask import globe
        super().__init__(globe.is_land)


class PolygonLandSet(PointLandSet):
    """Land polygons (GeoJSON) tested with a shapely prepared geometry."""

    def __init__(self, geometry):
        from shapely.prepared import prep
        self.geometry = geometry
        self._prepared = prep(geometry)
        super().__init__(self._contains)

    @classmethod
    def from_geojson(cls, data: Dict) -> "PolygonLandSet":
        from shapely.geometry import shape
        from shapely.ops import unary_union

        if data.get("type") == "FeatureCollection":
            geoms = [shape(f["geometry"]) for f in data.get("features", []) if f.get("geometry")]
        elif data.get("type") == "Feature":
            geoms = [shape(data["geometry"])]
        else:
            geoms = [shape(data)]

        polygons = [g if g.is_valid else g.buffer(0) for g in geoms]
        if not polygons:
            raise ValueError("GeoJSON contains no land geometry")
        return cls(unary_union(polygons))

    def _contains(self, lat: float, lng: float) -> bool:
        from shapely.geometry import Point
        return self._prepared.contains(Point(lng, lat))


# ---------------------------------------------------------------------------
# LandMask
# ---------------------------------------------------------------------------

class LandMask:
    """
    Immutable land (or, when built inverted, water) cell set.

    Args:
        cells: any container of H3 cell ids
        resolution: resolution the set was built at; None when the set
            answers for any resolution (point-sampled sets)
        source: human-readable origin, reported by status endpoints
    """

    def __init__(self, cells: Container[str], resolution: Optional[int] = None, source: str = "memory"):
        self._cells = cells
        self.resolution = resolution
        self.source = source

    @classmethod
    def from_cells(cls, cells: Iterable[str], source: str = "memory") -> "LandMask":
        cells = frozenset(cells)
        resolution = h3.get_resolution(next(iter(cells))) if cells else None
        return cls(cells, resolution=resolution, source=source)

    @property
    def kind(self) -> str:
        return type(self._cells).__name__

    def contains(self, cell: str) -> bool:
        """Raw membership test, re-expressed at the mask's native resolution."""
        if self.resolution is not None:
            res = h3.get_resolution(cell)
            if res > self.resolution:
                cell = h3.cell_to_parent(cell, self.resolution)
            elif res < self.resolution:
                cell = h3.cell_to_center_child(cell, self.resolution)
        return cell in self._cells

    def __contains__(self, cell) -> bool:
        return self.contains(cell)


def cells_from_geojson(data: Dict, resolution: int) -> set:
    """H3 cells whose centres fall inside the GeoJSON polygons."""
    from shapely.geometry import mapping

    land = PolygonLandSet.from_geojson(data).geometry
    parts = getattr(land, "geoms", [land])
    cells = set()
    for part in parts:
        shape = h3.geo_to_h3shape(mapping(part))
        cells.update(h3.h3shape_to_cells(shape, resolution))
    logger.info(f"Polygon fill: {len(cells)} cells at r{resolution}")
    return cells


# ---------------------------------------------------------------------------
# Loading (one mask per path, loaded once, shared read-only)
# ---------------------------------------------------------------------------
_load_lock = threading.Lock()
_loaded: Dict[str, LandMask] = {}


def _load_from_path(path: Path) -> LandMask:
    suffix = path.suffix.lower()
    if suffix == ".bloom":
        cells = BloomCellSet.load(str(path))
        resolution = _read_meta(path).get("resolution")
        return LandMask(cells, resolution=resolution, source=str(path))
    if suffix == ".geojson":
        return LandMask(PolygonLandSet.from_geojson(json.loads(path.read_text())), source=str(path))
    if suffix == ".json":
        data = json.loads(path.read_text())
        if isinstance(data, dict):
            cells = frozenset(data.get("cells", []))
            return LandMask(cells, resolution=data.get("resolution"), source=str(path))
        return LandMask.from_cells(data, source=str(path))
    if suffix == ".txt":
        lines = [ln.strip() for ln in path.read_text().splitlines()]
        return LandMask.from_cells([ln for ln in lines if ln and not ln.startswith("#")], source=str(path))
    raise ValueError(f"Unsupported land mask format: {path.name}")


def load_land_mask(path: Optional[str] = None) -> LandMask:
    """
    Load a land mask once per path. Thread-safe.

    ``path=None`` (or "globe") selects the global-land-mask raster.
    """
    key = path or "globe"
    if key in _loaded:
        return _loaded[key]

    with _load_lock:
        # Double-check after acquiring lock
        if key in _loaded:
            return _loaded[key]

        if key == "globe":
            mask = LandMask(GlobeLandSet(), source="global-land-mask")
        else:
            file_path = Path(key)
            if not file_path.exists():
                raise FileNotFoundError(f"Land mask not found: {file_path}")
            mask = _load_from_path(file_path)

        _loaded[key] = mask
        logger.info(f"Land mask loaded: {mask.source} ({mask.kind}, r{mask.resolution})")
        return mask


def get_land_mask_status(mask: Optional[LandMask] = None) -> Dict:
    """Get information about the land mask in use."""
    if mask is None:
        return {"loaded": False, "source": None, "kind": None, "resolution": None}
    return {
        "loaded": True,
        "source": mask.source,
        "kind": mask.kind,
        "resolution": mask.resolution,
    }


def probe_cells(res: int) -> Tuple[str, str]:
    """(interior, ocean) calibration probe cells at ``res``."""
    interior = h3.latlng_to_cell(INTERIOR_PROBE[1], INTERIOR_PROBE[0], res)
    ocean = h3.latlng_to_cell(OCEAN_PROBE[1], OCEAN_PROBE[0], res)
    return interior, ocean
