"""
Pure Enumeration Types for the AtoN Pipeline.

No business logic - pure type definitions only.

Exports:
    AtonKind: Discriminator of the AtoN variant payload
    AggregationType: Category of a physical co-location grouping
    AssociationType: Category of a logical relationship grouping
    DatasetOperation: Content log operation kinds
    ChangeEventKind: Inbound change event kinds
    PublicationKind: Internal publish/delete notification kinds
    SubscriptionEventType: Subscription lifecycle notification kinds
    ContainerType: Outgoing envelope container type
"""

from enum import Enum


class AtonKind(str, Enum):
    """
    AtoN kinds. Each kind belongs to exactly one payload family
    (see core.models.aton).
    """

    # Beacons
    CARDINAL_BEACON = "cardinal_beacon"
    LATERAL_BEACON = "lateral_beacon"
    ISOLATED_DANGER_BEACON = "isolated_danger_beacon"
    SAFE_WATER_BEACON = "safe_water_beacon"
    SPECIAL_PURPOSE_BEACON = "special_purpose_beacon"

    # Buoys
    CARDINAL_BUOY = "cardinal_buoy"
    LATERAL_BUOY = "lateral_buoy"
    INSTALLATION_BUOY = "installation_buoy"
    ISOLATED_DANGER_BUOY = "isolated_danger_buoy"
    SAFE_WATER_BUOY = "safe_water_buoy"
    SPECIAL_PURPOSE_BUOY = "special_purpose_buoy"
    EMERGENCY_WRECK_MARKING_BUOY = "emergency_wreck_marking_buoy"

    # Structures
    DAYMARK = "daymark"
    LANDMARK = "landmark"
    LIGHTHOUSE = "lighthouse"
    LIGHT_FLOAT = "light_float"
    LIGHT_VESSEL = "light_vessel"
    OFFSHORE_PLATFORM = "offshore_platform"
    PILE = "pile"
    SILO_TANK = "silo_tank"

    # Equipment
    LIGHT = "light"
    FOG_SIGNAL = "fog_signal"
    RADAR_REFLECTOR = "radar_reflector"
    RADAR_TRANSPONDER_BEACON = "radar_transponder_beacon"
    RADIO_STATION = "radio_station"
    RETRO_REFLECTOR = "retro_reflector"
    TOPMARK = "topmark"

    # AIS
    PHYSICAL_AIS_ATON = "physical_ais_aton"
    SYNTHETIC_AIS_ATON = "synthetic_ais_aton"
    VIRTUAL_AIS_ATON = "virtual_ais_aton"

    # Navigation lines
    NAVIGATION_LINE = "navigation_line"
    RECOMMENDED_TRACK = "recommended_track"

    UNKNOWN = "unknown"


class AggregationType(str, Enum):
    """Category of a physically co-located AtoN grouping."""

    LEADING_LINE = "leading_line"
    RANGE_SYSTEM = "range_system"
    MEASURED_DISTANCE = "measured_distance"
    BUOY_MOORING = "buoy_mooring"
    FAIRWAY_SYSTEM = "fairway_system"
    WATERWAY_TURN = "waterway_turn"
    CHANNEL_EDGE_GRADIENT = "channel_edge_gradient"
    LIGHT_LINE = "light_line"
    OTHER = "other"


class AssociationType(str, Enum):
    """Category of a logical relationship between AtoN peers."""

    DANGER_MARKINGS = "danger_markings"
    CHANNEL_MARKINGS = "channel_markings"
    LEADING_LINE_MARKINGS = "leading_line_markings"
    EQUIPMENT_STRUCTURE = "equipment_structure"
    OTHER = "other"


class DatasetOperation(str, Enum):
    """
    Content log operation kinds.

    AUTO is only a request hint: it resolves to CREATED when the dataset has
    no current content and UPDATED otherwise. It is never persisted.
    CANCELLED and DELETED are withdrawals.
    """

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    CANCELLED = "CANCELLED"
    DELETED = "DELETED"
    OTHER = "OTHER"
    AUTO = "AUTO"


class ChangeEventKind(str, Enum):
    """Inbound feature store event kinds."""

    CHANGED = "changed"
    REMOVED = "removed"


class PublicationKind(str, Enum):
    """Internal notification emitted by the reconciler."""

    PUBLISHED = "published"
    DELETED = "deleted"


class SubscriptionEventType(str, Enum):
    """Subscription lifecycle notification kinds."""

    SUBSCRIPTION_CREATED = "SUBSCRIPTION_CREATED"
    SUBSCRIPTION_REMOVED = "SUBSCRIPTION_REMOVED"


class ContainerType(str, Enum):
    """Outgoing envelope container type."""

    S100_DATASET = "S100_DataSet"
    S100_EXCHANGE_SET = "S100_ExchangeSet"
