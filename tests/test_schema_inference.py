"""Tests for schema inference and id normalization of frontend records."""

from datetime import datetime

from bson import ObjectId

from auto_import import TypedCollection, convert_nested_ids, convert_to_mongo_format, create_auto_schema
from schemas import FieldKind


class TestCreateAutoSchema:

    def test_infers_every_kind(self):
        sample = {
            "a": "2024-01-01T00:00:00Z",
            "b": "ok",
            "c": 3,
            "d": True,
            "e": [1, 2],
            "f": [{"x": 1}],
            "g": {"h": "v"},
        }
        assert create_auto_schema(sample) == {
            "a": FieldKind.Date,
            "b": FieldKind.String,
            "c": FieldKind.Number,
            "d": FieldKind.Boolean,
            "e": FieldKind.StringArray,
            "f": FieldKind.EmbeddedObjectArray,
            "g.h": FieldKind.String,
        }

    def test_short_date_strings_stay_strings(self):
        # Exactly 10 characters does not pass the length rule
        assert create_auto_schema({"day": "2024-01-01"}) == {"day": FieldKind.String}

    def test_long_non_date_string(self):
        assert create_auto_schema({"title": "Navy blue uniform shirt"}) == {"title": FieldKind.String}

    def test_floats_are_numbers(self):
        assert create_auto_schema({"price": 12.5}) == {"price": FieldKind.Number}

    def test_empty_array_is_string_array(self):
        assert create_auto_schema({"tags": []}) == {"tags": FieldKind.StringArray}

    def test_leading_null_is_embedded_object_array(self):
        assert create_auto_schema({"variants": [None, "x"]}) == {"variants": FieldKind.EmbeddedObjectArray}

    def test_deep_nesting_flattens_with_dots(self):
        schema = create_auto_schema({"meta": {"seo": {"title": "x", "score": 2}}})
        assert schema == {"meta.seo.title": FieldKind.String, "meta.seo.score": FieldKind.Number}
        assert "meta" not in schema

    def test_nulls_are_skipped(self):
        assert create_auto_schema({"discount": None}) == {}

    def test_deterministic(self):
        sample = {"a": "hello", "b": {"c": [{"d": 1}]}}
        assert create_auto_schema(sample) == create_auto_schema(sample)


class TestConvertNestedIds:

    def test_24_char_id_becomes_object_id(self):
        doc = {"id": "507f1f77bcf86cd799439011", "name": "x"}
        convert_nested_ids(doc)
        assert doc == {"_id": ObjectId("507f1f77bcf86cd799439011"), "name": "x"}
        assert "id" not in doc

    def test_short_id_is_untouched(self):
        doc = {"id": "short", "name": "x"}
        convert_nested_ids(doc)
        assert doc == {"id": "short", "name": "x"}

    def test_non_string_id_is_untouched(self):
        doc = {"id": 123456789012345678901234}
        convert_nested_ids(doc)
        assert doc == {"id": 123456789012345678901234}

    def test_recurses_into_objects_and_arrays(self):
        doc = {
            "brand": {"id": "507f1f77bcf86cd799439012"},
            "variants": [{"id": "507f1f77bcf86cd799439013", "sku": "v1"}, {"id": "v2"}],
        }
        convert_nested_ids(doc)
        assert doc["brand"] == {"_id": ObjectId("507f1f77bcf86cd799439012")}
        assert doc["variants"][0] == {"_id": ObjectId("507f1f77bcf86cd799439013"), "sku": "v1"}
        assert doc["variants"][1] == {"id": "v2"}


class TestConvertToMongoFormat:

    def test_wraps_single_object(self):
        docs = convert_to_mongo_format({"name": "solo"})
        assert len(docs) == 1
        assert isinstance(docs[0]["_id"], ObjectId)

    def test_uses_existing_id_and_drops_it(self):
        docs = convert_to_mongo_format([{"id": "507f1f77bcf86cd799439011", "name": "a"}, {"id": 7}])
        assert docs[0]["_id"] == ObjectId("507f1f77bcf86cd799439011")
        assert docs[1]["_id"] == 7
        assert all("id" not in doc for doc in docs)

    def test_stamps_timestamps(self):
        doc = convert_to_mongo_format([{"name": "a"}])[0]
        assert isinstance(doc["createdAt"], datetime)
        assert doc["createdAt"] == doc["updatedAt"]


class TestTypedCollectionCast:

    def test_casts_to_inferred_kinds(self, mongo_db):
        schema = create_auto_schema({
            "when": "2024-03-05T10:00:00Z",
            "sizes": ["S"],
            "count": 1,
            "details": {"active": True},
        })
        typed = TypedCollection(mongo_db["items"], schema)
        doc = typed.cast({"when": "2024-04-01T08:30:00Z", "sizes": [40, "M"], "count": "3",
                          "details": {"active": "false"}})
        assert isinstance(doc["when"], datetime)
        assert doc["sizes"] == ["40", "M"]
        assert doc["count"] == 3
        assert doc["details"]["active"] is False

    def test_uncastable_values_are_kept(self, mongo_db):
        typed = TypedCollection(mongo_db["items"], {"count": FieldKind.Number})
        assert typed.cast({"count": "many"}) == {"count": "many"}
