"""
UN/LOCODE Resolution.

Maps UN/LOCODE location codes to coordinates and derives the search
geometry a subscription gets when it names a location instead of a
geometry: a 64-point ellipse of 1 km diameter around the location.

Source file (UNLOCODE_FILE) is a JSON object:
    {"GBHUL": {"latitude": 53.74, "longitude": -0.33, "status": "AI"}, ...}

Exports:
    UnlocodeEntry: One location
    UnlocodeService: Code lookup + ellipse geometry
"""

import json
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field
from shapely.geometry import Polygon

from core.logic import ellipse_around
from exceptions import ConfigurationError
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "UnlocodeService")

UNLOCODE_DIAMETER_METERS = 1000.0


class UnlocodeEntry(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    status: Optional[str] = None


def normalize_code(code: str) -> str:
    """Upper case, spaces removed: 'gb hul' -> 'GBHUL'."""
    return "".join(code.split()).upper()


class UnlocodeService:

    def __init__(self, entries: Optional[Dict[str, Union[UnlocodeEntry, dict]]] = None):
        self._entries: Dict[str, UnlocodeEntry] = {}
        for code, entry in (entries or {}).items():
            self._entries[normalize_code(code)] = (
                entry if isinstance(entry, UnlocodeEntry) else UnlocodeEntry(**entry)
            )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "UnlocodeService":
        """
        Raises:
            ConfigurationError: file missing or not a JSON object of entries
        """
        try:
            with open(path, encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load UN/LOCODE file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"UN/LOCODE file {path} must hold a JSON object")

        service = cls(data)
        logger.info(f"🗺️ Loaded {len(service)} UN/LOCODE entries from {path}")
        return service

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, code: Optional[str]) -> Optional[UnlocodeEntry]:
        if not code:
            return None
        return self._entries.get(normalize_code(code))

    def geometry_for(self, code: Optional[str]) -> Optional[Polygon]:
        """1 km ellipse around the code's location, None for unknown codes."""
        entry = self.lookup(code)
        if entry is None:
            return None
        return ellipse_around(entry.longitude, entry.latitude, UNLOCODE_DIAMETER_METERS)
