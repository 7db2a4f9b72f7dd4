"""
Content Serialization and Payload Signing.

Dataset content is canonical JSON: sorted keys, two-space indent, members
ordered by id_code and no generation timestamps, so the same records always
produce byte-identical text and line-based deltas stay readable.

Exports:
    JsonContentSerializer: IContentSerializer producing canonical JSON
    HmacPayloadSigner: IPayloadSigner using HMAC-SHA256
"""

import base64
import hashlib
import hmac
import json
from typing import Iterable, List

from core.models import AtonRecord, Dataset
from infrastructure.interface_repository import IContentSerializer, IPayloadSigner


class JsonContentSerializer(IContentSerializer):

    def __init__(self, indent: int = 2):
        self.indent = indent

    @staticmethod
    def _members(records: Iterable[AtonRecord]) -> List[dict]:
        return [
            record.model_dump(mode="json")
            for record in sorted(records, key=lambda r: r.id_code)
        ]

    def _dumps(self, document: dict) -> str:
        return json.dumps(document, sort_keys=True, indent=self.indent, ensure_ascii=False)

    def serialize(self, dataset: Dataset, records: Iterable[AtonRecord]) -> str:
        return self._dumps({
            "dataset": {
                "uuid": str(dataset.uuid) if dataset.uuid else None,
                "title": dataset.title,
                "file_identifier": dataset.file_identifier,
                "geometry": dataset.geometry,
            },
            "members": self._members(records),
        })

    def serialize_records(self, records: Iterable[AtonRecord]) -> str:
        return self._dumps({"members": self._members(records)})


class HmacPayloadSigner(IPayloadSigner):
    """Base64 HMAC-SHA256 over the UTF-8 content."""

    scheme = "HMAC-SHA256"

    def __init__(self, key: str):
        if not key:
            raise ValueError("HmacPayloadSigner requires a non-empty key")
        self._key = key.encode("utf-8")

    def sign(self, content: str) -> str:
        digest = hmac.new(self._key, content.encode("utf-8"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def verify(self, content: str, signature: str) -> bool:
        return hmac.compare_digest(self.sign(content), signature)
