"""
AtoN Record Models.

An AtonRecord is one real-world aid to navigation. Shared fields live on the
record itself; kind-specific fields live in a payload chosen from a tagged
union keyed by ``kind``.

Groupings (Aggregation and Association) reference their peers by identifier
code only, never by object, so the AtoN <-> grouping graph carries no
reference cycles. Two groupings are equal when they have the same category
and the same peer set, whatever order the peers were added in.

Exports:
    Aggregation, Association: Typed peer groupings
    AtonRecord: Shared record fields + variant payload
    AtonPayload: Discriminated union of payload families
    kind_family: Payload family name for an AtonKind
"""

from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_serializer,
    field_validator,
    model_validator,
)

from core.logic.geometry import parse_geometry, to_wkt
from .enums import AggregationType, AssociationType, AtonKind


# ============================================================================
# GROUPINGS
# ============================================================================

class AtonGrouping(BaseModel):
    """
    Base for typed peer groupings.

    Equality and hash are defined by (grouping class, category, peer set).
    """

    model_config = ConfigDict(frozen=True)

    peers: FrozenSet[str] = Field(default_factory=frozenset)

    @field_validator('peers', mode='before')
    @classmethod
    def normalize_peers(cls, v: Any) -> FrozenSet[str]:
        if v is None:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(str(p).strip() for p in v if p is not None and str(p).strip())

    @field_serializer('peers')
    def serialize_peers(self, peers: FrozenSet[str]) -> List[str]:
        return sorted(peers)

    @property
    def category(self) -> Enum:
        raise NotImplementedError

    @property
    def key(self) -> tuple:
        return (type(self).__name__, self.category.value, tuple(sorted(self.peers)))

    def with_peer(self, id_code: str) -> "AtonGrouping":
        return self.model_copy(update={'peers': self.peers | {id_code}})

    def without_peer(self, id_code: str) -> "AtonGrouping":
        return self.model_copy(update={'peers': self.peers - {id_code}})

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AtonGrouping):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class Aggregation(AtonGrouping):
    """Grouping of physically co-located peers."""

    aggregation_type: AggregationType

    @property
    def category(self) -> AggregationType:
        return self.aggregation_type


class Association(AtonGrouping):
    """Logical relationship between peers."""

    association_type: AssociationType

    @property
    def category(self) -> AssociationType:
        return self.association_type


# ============================================================================
# VARIANT PAYLOADS
# ============================================================================

class _Payload(BaseModel):
    model_config = ConfigDict(extra='ignore')


class BeaconPayload(_Payload):
    kind: Literal[
        "cardinal_beacon", "lateral_beacon", "isolated_danger_beacon",
        "safe_water_beacon", "special_purpose_beacon",
    ]
    object_name: Optional[str] = None
    beacon_shape: Optional[str] = None
    category: Optional[str] = None
    colours: List[str] = Field(default_factory=list)
    colour_patterns: List[str] = Field(default_factory=list)
    marks_navigational_system: Optional[str] = None
    radar_conspicuous: Optional[bool] = None
    visually_conspicuous: Optional[bool] = None
    height: Optional[float] = None
    vertical_length: Optional[float] = None


class BuoyPayload(_Payload):
    kind: Literal[
        "cardinal_buoy", "lateral_buoy", "installation_buoy",
        "isolated_danger_buoy", "safe_water_buoy", "special_purpose_buoy",
        "emergency_wreck_marking_buoy",
    ]
    object_name: Optional[str] = None
    buoy_shape: Optional[str] = None
    category: Optional[str] = None
    colours: List[str] = Field(default_factory=list)
    colour_patterns: List[str] = Field(default_factory=list)
    marks_navigational_system: Optional[str] = None
    radar_conspicuous: Optional[bool] = None
    vertical_length: Optional[float] = None


class StructurePayload(_Payload):
    kind: Literal[
        "daymark", "landmark", "lighthouse", "light_float", "light_vessel",
        "offshore_platform", "pile", "silo_tank",
    ]
    object_name: Optional[str] = None
    category: Optional[str] = None
    colours: List[str] = Field(default_factory=list)
    nature_of_construction: List[str] = Field(default_factory=list)
    visually_conspicuous: Optional[bool] = None
    height: Optional[float] = None


class LightPayload(_Payload):
    kind: Literal["light"]
    object_name: Optional[str] = None
    categories_of_light: List[str] = Field(default_factory=list)
    colour: Optional[str] = None
    exhibition_condition: Optional[str] = None
    height: Optional[float] = None
    light_characteristic: Optional[str] = None
    signal_group: Optional[str] = None
    signal_period: Optional[str] = None
    signal_sequence: Optional[str] = None
    orientation: Optional[float] = None
    sector_limit_one: Optional[float] = None
    sector_limit_two: Optional[float] = None
    value_of_nominal_range: Optional[float] = None


class EquipmentPayload(_Payload):
    kind: Literal[
        "fog_signal", "radar_reflector", "radar_transponder_beacon",
        "radio_station", "retro_reflector", "topmark",
    ]
    object_name: Optional[str] = None
    category: Optional[str] = None
    colours: List[str] = Field(default_factory=list)
    signal_period: Optional[str] = None
    parent: Optional[str] = Field(default=None, description="id_code of the carrying structure")


class AisPayload(_Payload):
    kind: Literal["physical_ais_aton", "synthetic_ais_aton", "virtual_ais_aton"]
    object_name: Optional[str] = None
    mmsi: Optional[str] = None
    virtual_aton_category: Optional[str] = None
    broadcast_by: List[str] = Field(default_factory=list, description="id_codes of broadcasting radio stations")


class NavigationLinePayload(_Payload):
    kind: Literal["navigation_line", "recommended_track"]
    category: Optional[str] = None
    orientation: Optional[float] = None


class GenericPayload(_Payload):
    kind: Literal["unknown"]
    attributes: Dict[str, Any] = Field(default_factory=dict)


AtonPayload = Annotated[
    Union[
        BeaconPayload,
        BuoyPayload,
        StructurePayload,
        LightPayload,
        EquipmentPayload,
        AisPayload,
        NavigationLinePayload,
        GenericPayload,
    ],
    Field(discriminator='kind'),
]


_FAMILIES = {
    BeaconPayload: "beacon",
    BuoyPayload: "buoy",
    StructurePayload: "structure",
    LightPayload: "light",
    EquipmentPayload: "equipment",
    AisPayload: "ais",
    NavigationLinePayload: "navigation_line",
    GenericPayload: "generic",
}


def kind_family(kind: AtonKind) -> str:
    """Payload family name for an AtonKind."""
    for payload_cls, family in _FAMILIES.items():
        if kind.value in payload_cls.model_fields['kind'].annotation.__args__:
            return family
    return "generic"


# ============================================================================
# ATON RECORD
# ============================================================================

class AtonRecord(BaseModel):
    """
    One aid to navigation.

    id_code is the business key. geometry is canonical WKT (EPSG:4326).
    Every grouping the record declares contains the record's own id_code.
    """

    model_config = ConfigDict(extra='ignore')

    id_code: str = Field(..., min_length=1, description="Stable identifier code (business key)")
    aton_number: Optional[str] = Field(default=None, description="AtoN number")
    geometry: Optional[str] = Field(default=None, description="WKT geometry, EPSG:4326")
    date_start: Optional[date] = Field(default=None, description="Validity start (inclusive)")
    date_end: Optional[date] = Field(default=None, description="Validity end (inclusive)")
    textual_description: Optional[str] = None
    informations: List[str] = Field(default_factory=list)
    payload: AtonPayload
    aggregations: List[Aggregation] = Field(default_factory=list)
    associations: List[Association] = Field(default_factory=list)

    _shape: Any = PrivateAttr(default=None)

    @field_validator('id_code')
    @classmethod
    def strip_id_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("id_code must not be blank")
        return v

    @field_validator('geometry', mode='before')
    @classmethod
    def normalize_geometry(cls, v: Any) -> Optional[str]:
        return to_wkt(parse_geometry(v))

    @model_validator(mode='after')
    def check_record(self) -> "AtonRecord":
        if self.date_start and self.date_end and self.date_start > self.date_end:
            raise ValueError(
                f"date_start {self.date_start} is after date_end {self.date_end}"
            )
        # Each declared grouping includes this record; duplicates collapse
        self.aggregations = sorted(
            {g.with_peer(self.id_code) for g in self.aggregations}, key=lambda g: g.key
        )
        self.associations = sorted(
            {g.with_peer(self.id_code) for g in self.associations}, key=lambda g: g.key
        )
        return self

    @property
    def kind(self) -> AtonKind:
        return AtonKind(self.payload.kind)

    @property
    def shape(self):
        """Parsed shapely geometry (cached), None when the record has no geometry."""
        if self._shape is None and self.geometry:
            self._shape = parse_geometry(self.geometry)
        return self._shape

    def is_valid_at(self, as_of: datetime) -> bool:
        """date_start <= as_of <= date_end, open bounds unconstrained."""
        day = as_of.date() if isinstance(as_of, datetime) else as_of
        if self.date_start and day < self.date_start:
            return False
        if self.date_end and day > self.date_end:
            return False
        return True

    def validity_window(self):
        """
        Validity as a datetime window: start of the first day to the end of
        the last day. None bounds stay open.
        """
        start = datetime.combine(self.date_start, time.min, tzinfo=timezone.utc) if self.date_start else None
        end = datetime.combine(self.date_end, time.max, tzinfo=timezone.utc) if self.date_end else None
        return start, end
