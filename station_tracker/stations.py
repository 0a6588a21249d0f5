"""Station registry built from the definitions in config.py."""

from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict

from config import STATION_DEFINITIONS
from station_tracker.models import OrbitalElementRecord


class StationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    catalog_number: int
    name_patterns: Tuple[str, ...]
    fallback: OrbitalElementRecord

    def matches_name(self, object_name: str) -> bool:
        return any(pattern in object_name for pattern in self.name_patterns)


def _build_registry() -> Dict[str, StationConfig]:
    registry = {}
    for key, definition in STATION_DEFINITIONS.items():
        registry[key] = StationConfig(
            key=key,
            name=definition["name"],
            catalog_number=definition["catalog_number"],
            name_patterns=tuple(definition["name_patterns"]),
            fallback=OrbitalElementRecord.model_validate(definition["fallback"]),
        )
    return registry


STATIONS: Dict[str, StationConfig] = _build_registry()


def get_station(key: str) -> StationConfig:
    """Look up a configured station by key ("css" or "iss")."""
    try:
        return STATIONS[key]
    except KeyError:
        raise ValueError(
            f"Unknown station {key!r}; expected one of {sorted(STATIONS)}"
        ) from None
