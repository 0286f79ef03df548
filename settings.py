import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

# -------------------------
# MUNICH DEFAULTS
# -------------------------
# (south, west, north, east)
MUNICH_BBOX = (48.06, 11.36, 48.25, 11.79)
MUNICH_CENTER = (48.1351, 11.5820)

AMENITIES = (
    "bar", "pub", "cafe", "biergarten",
    "restaurant", "fast_food", "nightclub", "ice_cream",
)

OVERPASS_URL = "https://overpass-api.de/api/interpreter"
VOTE_PAGE_SIZE = 1000


def _env_float(name, default):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    overpass_url: str = OVERPASS_URL
    overpass_timeout: float = 60.0
    store_timeout: float = 15.0
    page_size: int = VOTE_PAGE_SIZE
    bbox: Tuple[float, float, float, float] = MUNICH_BBOX
    amenities: Tuple[str, ...] = AMENITIES
    flags_path: str = "data/local_flags.json"
    log_level: str = "INFO"
    max_retries: int = 3
    retry_base_delay: float = 1.0
    center: Tuple[float, float] = field(default=MUNICH_CENTER)

    @classmethod
    def from_env(cls):
        """Build settings from environment variables (and a .env file, if any)."""
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or None,
            supabase_key=os.getenv("SUPABASE_ANON_KEY") or None,
            overpass_url=os.getenv("OVERPASS_URL", OVERPASS_URL),
            overpass_timeout=_env_float("OVERPASS_TIMEOUT", 60.0),
            store_timeout=_env_float("SUPABASE_TIMEOUT", 15.0),
            flags_path=os.getenv("MUCPAY_FLAGS_PATH", "data/local_flags.json"),
            log_level=os.getenv("MUCPAY_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def has_store_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)
