"""
AtoN Change Listener - Inbound Event Handling.

Turns change events from the event source into reconciler calls:

    changed -> decode members -> keep those inside the area of interest -> upsert
    removed -> extract identifier codes from the filter -> delete (no area filter)

Changed payload shapes accepted:
    {"members": [{...primary...}, {...peer...}, ...]}
    [{...}, {...}]
    {...single record...}
    any of the above as JSON text

Removed filters accepted:
    ["AtoN-1", "AtoN-2"]
    "IN ('AtoN-1','AtoN-2')"
    "AtoN-1, AtoN-2"

Malformed payloads are logged and dropped. A delete of an unknown
identifier is logged as a data problem. Neither is raised to the event
source; anything else is.

Exports:
    AtonChangeListener: IChangeListener feeding the AtonReconciler
    decode_members: Payload -> AtonRecord list
    parse_fid_filter: Filter -> identifier codes
"""

import json
import re
import threading
from typing import Any, List, Optional

from pydantic import ValidationError as PydanticValidationError
from shapely.geometry.base import BaseGeometry

from core.errors import error_dimensions
from core.logic import area_of_interest, intersects
from core.models import AtonRecord, ChangeEvent, ChangeEventKind
from exceptions import MalformedPayloadError, ResourceNotFoundError
from infrastructure.interface_repository import IChangeListener, IEventSource
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.LISTENER, "AtonChangeListener")

_QUOTED = re.compile(r"'((?:[^']|'')*)'")


def decode_members(payload: Any) -> List[AtonRecord]:
    """
    Decode a changed-event payload into AtoN records (primary first).

    Raises:
        MalformedPayloadError: undecodable text, wrong shape, or any member
            failing validation (missing id_code, unknown kind, bad geometry)
    """
    if payload is None:
        raise MalformedPayloadError("Changed event without payload")

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedPayloadError(f"Payload is not JSON: {e}") from e

    if isinstance(payload, dict) and 'members' in payload:
        members = payload['members']
    elif isinstance(payload, dict):
        members = [payload]
    else:
        members = payload

    if not isinstance(members, list) or not members:
        raise MalformedPayloadError("Payload carries no members")

    records = []
    for index, member in enumerate(members):
        if not isinstance(member, dict):
            raise MalformedPayloadError(f"Member {index} is not an object")
        try:
            records.append(AtonRecord.model_validate(member))
        except PydanticValidationError as e:
            raise MalformedPayloadError(
                f"Member {index} ({member.get('id_code', '?')}) invalid: "
                f"{e.error_count()} error(s): {e.errors()[0]['msg']}"
            ) from e
    return records


def parse_fid_filter(fid_filter: Any) -> List[str]:
    """
    Identifier codes named by a removed-event filter, in order, without
    duplicates.

    Raises:
        MalformedPayloadError: filter missing or names nothing
    """
    if fid_filter is None:
        raise MalformedPayloadError("Removed event without feature-id filter")

    if isinstance(fid_filter, (list, tuple, set)):
        candidates = [str(f) for f in fid_filter if f is not None]
    elif isinstance(fid_filter, str):
        quoted = _QUOTED.findall(fid_filter)
        if quoted:
            candidates = [q.replace("''", "'") for q in quoted]
        else:
            text = re.sub(r"^\s*IN\s*\(|\)\s*$", "", fid_filter, flags=re.IGNORECASE)
            candidates = text.split(",")
    else:
        raise MalformedPayloadError(f"Unsupported filter type {type(fid_filter).__name__}")

    ids: List[str] = []
    for candidate in candidates:
        candidate = candidate.strip()
        if candidate and candidate not in ids:
            ids.append(candidate)
    if not ids:
        raise MalformedPayloadError(f"Filter names no identifiers: {fid_filter!r}")
    return ids


class AtonChangeListener(IChangeListener):
    """
    Listener registered with an IEventSource.

    on_event is safe to call from many delivery threads at once; per-record
    ordering is the reconciler's job.
    """

    def __init__(self, reconciler):
        self.reconciler = reconciler
        self._area: Optional[BaseGeometry] = None
        self._event_source: Optional[IEventSource] = None
        self._lock = threading.Lock()

    @property
    def area(self) -> Optional[BaseGeometry]:
        return self._area

    @property
    def registered(self) -> bool:
        return self._event_source is not None

    def init(self, area: Any, event_source: IEventSource) -> None:
        """
        Register with ``event_source`` scoped to ``area``.

        An empty or invalid polygon matches nothing: changed events are then
        all discarded, removed events still go through.
        """
        with self._lock:
            if self._event_source is not None:
                self._event_source.remove_listener(self)
            self._area = area_of_interest(area)
            self._event_source = event_source
            event_source.add_listener(self)

        if self._area is None:
            logger.warning("⚠️ Area of interest is empty or invalid: changed events will be discarded")
        else:
            logger.info(f"👂 Listening within {self._area.geom_type} bounds={self._area.bounds}")

    def destroy(self) -> None:
        """Deregister. Idempotent and safe without init."""
        with self._lock:
            source, self._event_source = self._event_source, None
        if source is not None:
            source.remove_listener(self)
            logger.info("🛑 Listener deregistered")

    def on_event(self, event: ChangeEvent) -> None:
        if event.kind == ChangeEventKind.CHANGED:
            self._on_changed(event)
        else:
            self._on_removed(event)

    def _on_changed(self, event: ChangeEvent) -> None:
        try:
            records = decode_members(event.payload)
        except MalformedPayloadError as e:
            logger.error(
                f"❌ Dropping malformed change event {event.message_id or ''}: {e}",
                extra={'custom_dimensions': {'message_id': event.message_id, **error_dimensions(e)}}
            )
            return

        accepted = [r for r in records if intersects(r.shape, self._area)]
        skipped = len(records) - len(accepted)
        if skipped:
            logger.debug(f"⏭️ {skipped} record(s) outside the area of interest")

        for record in accepted:
            self.reconciler.upsert(record)

    def _on_removed(self, event: ChangeEvent) -> None:
        try:
            id_codes = parse_fid_filter(event.fid_filter)
        except MalformedPayloadError as e:
            logger.error(
                f"❌ Dropping malformed removal event {event.message_id or ''}: {e}",
                extra={'custom_dimensions': {'message_id': event.message_id, **error_dimensions(e)}}
            )
            return

        for id_code in id_codes:
            try:
                self.reconciler.delete(id_code)
            except ResourceNotFoundError as e:
                logger.warning(
                    f"⚠️ Removal of unknown AtoN {id_code}: {e}",
                    extra={'custom_dimensions': {'id_code': id_code, **error_dimensions(e)}}
                )
