import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import requests

from errors import FetchError
from payment_status import UNKNOWN_STATUS, Status, VoteTally
from settings import AMENITIES, MUNICH_BBOX, OVERPASS_URL

logger = logging.getLogger(__name__)


@dataclass
class Venue:
    id: str
    lat: float
    lon: float
    name: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict)
    tally: VoteTally = field(default_factory=VoteTally)
    status: Status = UNKNOWN_STATUS

    @property
    def display_name(self) -> str:
        return self.name or "Unknown Place"


# -------------------------
# QUERY
# -------------------------
def build_query(bbox: Tuple[float, float, float, float], amenities: Iterable[str], timeout: int = 25) -> str:
    south, west, north, east = bbox
    kinds = "|".join(amenities)
    if not kinds:
        raise ValueError("At least one amenity kind is required")
    return f"""
    [out:json][timeout:{timeout}];
    (
      node["amenity"~"{kinds}"]({south},{west},{north},{east});
    );
    out body;
    """


def _coords(elem):
    if elem.get("type") == "node":
        lat, lon = elem.get("lat"), elem.get("lon")
    else:
        center = elem.get("center")
        if not isinstance(center, dict):
            return None
        lat, lon = center.get("lat"), center.get("lon")
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


def parse_elements(data) -> List[Venue]:
    """Turn an Overpass JSON payload into venues, raising FetchError if it is unusable."""
    if not isinstance(data, dict) or not data.get("elements"):
        raise FetchError("No data received from Overpass API")
    if not isinstance(data["elements"], list):
        raise FetchError("Overpass 'elements' is not a list")

    venues = []
    for elem in data["elements"]:
        if not isinstance(elem, dict) or "id" not in elem:
            continue
        coords = _coords(elem)
        if coords is None:
            continue
        tags = elem.get("tags")
        if not isinstance(tags, dict):
            tags = {}
        venues.append(Venue(
            id=f"{elem.get('type', 'node')}/{elem['id']}",
            lat=coords[0],
            lon=coords[1],
            name=tags.get("name"),
            tags=dict(tags),
        ))

    if not venues:
        raise FetchError("Overpass response contained no usable venues")
    return venues


# -------------------------
# OVERPASS CLIENT
# -------------------------
class OverpassClient:
    def __init__(self, base_url=OVERPASS_URL, timeout=60, session=None):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_venues(self, bbox=MUNICH_BBOX, amenities=AMENITIES) -> List[Venue]:
        """Run a single bounding-box query. Any failure raises FetchError."""
        query = build_query(bbox, amenities)
        try:
            resp = self.session.post(
                self.base_url,
                data={"data": query},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise FetchError(f"Overpass request failed: {e}") from e

        if resp.status_code != 200:
            raise FetchError(f"Overpass API error: {resp.status_code} {resp.reason}")

        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError(f"Overpass returned invalid JSON: {e}") from e

        venues = parse_elements(data)
        logger.info("Fetched %d venues from Overpass", len(venues))
        return venues
