import logging

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from settings import MUNICH_BBOX

logger = logging.getLogger(__name__)

USER_AGENT = "muc_pay_app"


def geocode_in_bbox(address, bbox=MUNICH_BBOX, geolocator=None):
    """Look up ``address`` inside ``bbox`` only, so "Marienplatz" means the Munich one.

    Returns ``(lat, lon)`` or None when nothing matches or the lookup fails.
    """
    south, west, north, east = bbox
    geolocator = geolocator or Nominatim(user_agent=USER_AGENT)
    try:
        location = geolocator.geocode(
            address,
            viewbox=[(south, west), (north, east)],
            bounded=True,
            country_codes="de",
        )
    except GeopyError as e:
        logger.warning("Geocoding %r failed: %s", address, e)
        return None
    if location is None:
        return None
    return (location.latitude, location.longitude)
