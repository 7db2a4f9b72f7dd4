"""
Content serializer and payload signer tests.
"""

import json

import pytest

from core.models import Dataset
from services.serialization import HmacPayloadSigner, JsonContentSerializer
from tests.factories.model_factories import make_dataset, make_record


class TestJsonContentSerializer:

    def test_members_ordered_by_id_code(self):
        dataset = Dataset(**make_dataset())
        text = JsonContentSerializer().serialize(dataset, [make_record("b"), make_record("a")])
        assert [m["id_code"] for m in json.loads(text)["members"]] == ["a", "b"]

    def test_input_order_irrelevant(self):
        dataset = Dataset(**make_dataset())
        records = [make_record("a"), make_record("b"), make_record("c")]
        serializer = JsonContentSerializer()
        assert serializer.serialize(dataset, records) == serializer.serialize(dataset, list(reversed(records)))

    def test_dataset_header(self):
        dataset = Dataset(**make_dataset(title="North Sea"))
        document = json.loads(JsonContentSerializer().serialize(dataset, []))
        assert document["dataset"]["title"] == "North Sea"
        assert document["members"] == []

    def test_one_line_per_field(self):
        text = JsonContentSerializer().serialize_records([make_record("a")])
        assert text.count("\n") > 5

    def test_payload_kind_serialized(self):
        text = JsonContentSerializer().serialize_records([make_record("a", kind="virtual_ais_aton")])
        assert json.loads(text)["members"][0]["payload"]["kind"] == "virtual_ais_aton"


class TestHmacPayloadSigner:

    def test_sign_and_verify(self):
        signer = HmacPayloadSigner("secret")
        signature = signer.sign("content")
        assert signer.verify("content", signature)
        assert not signer.verify("tampered", signature)

    def test_key_matters(self):
        assert HmacPayloadSigner("a").sign("x") != HmacPayloadSigner("b").sign("x")

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            HmacPayloadSigner("")
