"""Tests for field identity and the schema field map."""

import pytest

from src.custom_fields.field_identification import (
    create_schema_field_map,
    extract_field_metadata,
    field_exists_in_schema,
    find_field_by_label,
    generate_field_id,
    get_field_metadata_from_schema,
    parse_field_id,
)
from src.custom_fields.types import (
    FieldIdentity,
    FieldMappingConfig,
    FieldType,
    FormComponent,
    FormSchema,
)


class TestGenerateFieldId:
    """Tests for generate_field_id."""

    def test_explicit_timestamp(self):
        """Identity joins the four parts with underscores."""
        assert generate_field_id("S1", "r1", "c1", 1000) == "S1_r1_c1_1000"

    def test_default_timestamp_uses_clock(self, monkeypatch):
        """Omitted timestamp comes from the current time."""
        from src.custom_fields import field_identification

        monkeypatch.setattr(field_identification, "current_time_ms", lambda: 42)
        assert generate_field_id("S1", "r1", "c1") == "S1_r1_c1_42"

    def test_round_trip(self):
        """Parsing a generated identity gives back its parts."""
        field_id = generate_field_id("schema", "row-1", "col-1-0", 1700000000000)
        parsed = parse_field_id(field_id)

        assert parsed == FieldIdentity("schema", "row-1", "col-1-0", 1700000000000)
        assert str(parsed) == field_id
        assert parsed.position_key == "schema_row-1_col-1-0"


class TestParseFieldId:
    """Tests for parse_field_id."""

    def test_valid(self):
        """Four segments ending in an integer parse."""
        parsed = parse_field_id("S1_r1_c1_1000")

        assert parsed.schema_id == "S1"
        assert parsed.row_id == "r1"
        assert parsed.column_id == "c1"
        assert parsed.timestamp == 1000

    @pytest.mark.parametrize("field_id", [
        "S1_r1_c1",
        "S1_r1_c1_1000_extra",
        "S1_r_1_c1_1000",
        "S1_r1_c1_abc",
        "_r1_c1_1000",
        "S1__c1_1000",
        "S1_r1_c1_1000\n",
        "S1_r1_c1_\u0661\u0662\u0663",
        "",
    ])
    def test_malformed_returns_none(self, field_id):
        """Anything but four non-empty segments with a numeric tail is rejected."""
        assert parse_field_id(field_id) is None

    def test_non_string_returns_none(self):
        """Non-string input never raises."""
        assert parse_field_id(None) is None
        assert parse_field_id(1234) is None


class TestSchemaFieldMap:
    """Tests for create_schema_field_map."""

    def test_keys_in_schema_order(self, schema):
        """Every placed component is indexed by position key, in row/column order."""
        field_map = create_schema_field_map(schema)

        assert list(field_map) == [
            "S1_r1_c1",
            "S1_r1_c2",
            "S1_r2_c1",
            "S1_r2_c2",
            "S1_r3_c1",
            "S1_r3_c2",
        ]

    def test_empty_column_skipped(self, schema):
        """A column without a component has no entry."""
        assert "S1_r3_c3" not in create_schema_field_map(schema)

    def test_metadata_projection(self, schema):
        """Metadata carries label, type, required flag and options."""
        metadata = create_schema_field_map(schema)["S1_r2_c2"]

        assert metadata.label == "Ministries"
        assert metadata.type == FieldType.CHECKBOX
        assert metadata.required is False
        assert metadata.options == ["Choir", "Ushers", "Youth"]
        assert metadata.row_id == "r2"
        assert metadata.column_id == "c2"

    def test_identities_share_one_timestamp(self, schema):
        """All identities from one call carry the same creation marker."""
        field_map = create_schema_field_map(schema)
        timestamps = {parse_field_id(m.field_id).timestamp for m in field_map.values()}

        assert len(timestamps) == 1

    def test_without_timestamp(self, schema):
        """include_timestamp=False gives deterministic identities."""
        config = FieldMappingConfig(include_timestamp=False)
        field_map = create_schema_field_map(schema, config)

        assert field_map["S1_r1_c1"].field_id == "S1_r1_c1_0"
        assert field_map["S1_r1_c1"].created_at == 0

    def test_none_schema(self):
        """No schema gives an empty map."""
        assert create_schema_field_map(None) == {}

    def test_schema_without_rows(self):
        """A schema with no rows gives an empty map."""
        assert create_schema_field_map(FormSchema(id="S1", rows=[])) == {}


class TestExtractFieldMetadata:
    """Tests for extract_field_metadata."""

    def test_defaults(self):
        """Missing label and required flag fall back to defaults."""
        component = FormComponent(id="cmp-1", type=FieldType.TEXT)
        metadata = extract_field_metadata(component, "S1", "r1", "c1", "S1_r1_c1_5")

        assert metadata.label == "Untitled Field"
        assert metadata.required is False
        assert metadata.created_at == 5

    def test_generates_identity(self):
        """Without an identity a fresh one is generated for the position."""
        component = FormComponent(id="cmp-1", type=FieldType.EMAIL, label="Email")
        metadata = extract_field_metadata(component, "S1", "r1", "c1")

        parsed = parse_field_id(metadata.field_id)
        assert parsed.position_key == "S1_r1_c1"
        assert parsed.timestamp == metadata.created_at


class TestSchemaLookups:
    """Tests for identity lookups against a schema."""

    def test_field_exists(self, schema):
        """Position decides existence; the timestamp is ignored."""
        assert field_exists_in_schema("S1_r1_c1_1", schema)
        assert field_exists_in_schema("S1_r1_c1_999999", schema)
        assert not field_exists_in_schema("S1_r9_c1_1", schema)
        assert not field_exists_in_schema("S1_r3_c3_1", schema)

    def test_field_exists_other_schema(self, schema):
        """Identities from another schema do not exist here."""
        assert not field_exists_in_schema("S2_r1_c1_1", schema)

    def test_field_exists_malformed(self, schema):
        """Malformed identities never exist."""
        assert not field_exists_in_schema("garbage", schema)

    def test_get_metadata_keeps_identity(self, schema):
        """Metadata lookup keeps the queried identity."""
        metadata = get_field_metadata_from_schema("S1_r1_c1_1000", schema)

        assert metadata.field_id == "S1_r1_c1_1000"
        assert metadata.created_at == 1000
        assert metadata.label == "Email"
        assert metadata.required is True

    def test_get_metadata_missing(self, schema):
        """Unknown positions give None."""
        assert get_field_metadata_from_schema("S1_r9_c9_1", schema) is None
        assert get_field_metadata_from_schema("S1_r1_c1_1", None) is None

    def test_find_by_label(self, schema):
        """Label lookup matches exactly and uses the given timestamp."""
        metadata = find_field_by_label(schema, "Favorite Color", timestamp=77)

        assert metadata.field_id == "S1_r2_c1_77"
        assert metadata.type == FieldType.SELECT

    def test_find_by_label_is_exact(self, schema):
        """Case and partial matches do not count."""
        assert find_field_by_label(schema, "email") is None
        assert find_field_by_label(schema, "Favorite") is None

    def test_find_by_label_first_wins(self, schema):
        """Duplicate labels resolve to the first field in order."""
        schema.rows[2].columns[0].component.label = "Full Name"

        metadata = find_field_by_label(schema, "Full Name", timestamp=1)
        assert metadata.field_id == "S1_r1_c2_1"
