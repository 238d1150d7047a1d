"""Tests for custom field value validation."""

from datetime import date

import pytest

from src.custom_fields.schema_validation import (
    TYPE_VALIDATORS,
    FieldValidationResult,
    is_empty_value,
    parse_date_value,
    validate_field_value,
    validate_saved_field,
    validate_saved_form_data,
)
from src.custom_fields.types import (
    FieldMappingConfig,
    FieldType,
    FileSettings,
    ValidationRules,
)


class TestFieldValidationResult:
    """Tests for FieldValidationResult."""

    def test_add_error_invalidates(self):
        """Errors mark the result invalid."""
        result = FieldValidationResult()
        result.add_error("bad")

        assert result.is_valid is False
        assert result.errors == ["bad"]

    def test_add_warning_keeps_valid(self):
        """Warnings do not affect validity."""
        result = FieldValidationResult()
        result.add_warning("hmm")

        assert result.is_valid is True
        assert result.warnings == ["hmm"]


class TestTypeValidators:
    """Tests for the per-type validator table."""

    def test_every_field_type_has_validator(self):
        """The dispatch table is total over FieldType."""
        assert set(TYPE_VALIDATORS) == set(FieldType)

    def test_unknown_type_accepts_anything(self, make_metadata):
        """Unknown types only get the required check."""
        metadata = make_metadata("S1_r1_c1_1", "Legacy", FieldType.UNKNOWN)

        assert validate_field_value({"any": "thing"}, metadata).is_valid


class TestRequiredAndEmpty:
    """Tests for required/empty handling."""

    def test_required_empty(self, make_metadata):
        """Required and empty gives exactly one error."""
        metadata = make_metadata("S1_r1_c1_1", "Email", FieldType.EMAIL, required=True)

        for value in (None, ""):
            result = validate_field_value(value, metadata)
            assert result.is_valid is False
            assert result.errors == ["Email is required"]

    def test_optional_empty(self, make_metadata):
        """Optional and empty is valid with no messages."""
        metadata = make_metadata("S1_r1_c1_1", "Email", FieldType.EMAIL)

        result = validate_field_value("", metadata)

        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []

    def test_empty_list_is_not_empty(self, make_metadata):
        """Only None and "" count as empty."""
        assert is_empty_value(None)
        assert is_empty_value("")
        assert not is_empty_value([])
        assert not is_empty_value(0)


class TestEmailAndPhone:
    """Tests for email and phone checks."""

    @pytest.mark.parametrize("value", ["a@b.com", "first.last@church.org"])
    def test_valid_email(self, make_metadata, value):
        """Well-formed addresses pass."""
        metadata = make_metadata("S1_r1_c1_1", "Email", FieldType.EMAIL)
        assert validate_field_value(value, metadata).is_valid

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", "a b@c.com", 42])
    def test_invalid_email(self, make_metadata, value):
        """Malformed addresses give an error."""
        metadata = make_metadata("S1_r1_c1_1", "Email", FieldType.EMAIL)

        result = validate_field_value(value, metadata)

        assert result.is_valid is False
        assert result.errors == ["Email must be a valid email address"]

    @pytest.mark.parametrize("value", ["(555) 123-4567", "+1 555 123 4567", "5551234567"])
    def test_valid_phone(self, make_metadata, value):
        """Common phone formats pass without warnings."""
        metadata = make_metadata("S1_r1_c1_1", "Phone", FieldType.PHONE)

        result = validate_field_value(value, metadata)

        assert result.is_valid
        assert result.warnings == []

    @pytest.mark.parametrize("value", ["call me", "0123456", "12345678901234567890"])
    def test_suspicious_phone_warns(self, make_metadata, value):
        """Implausible numbers only warn."""
        metadata = make_metadata("S1_r1_c1_1", "Phone", FieldType.PHONE)

        result = validate_field_value(value, metadata)

        assert result.is_valid is True
        assert result.warnings == ["Phone may not be a valid phone number"]


class TestNumberAndDate:
    """Tests for number and date checks."""

    @pytest.mark.parametrize("value", [42, 3.5, "42", " -7.25 ", 0])
    def test_valid_number(self, make_metadata, value):
        """Numbers and numeric strings pass."""
        metadata = make_metadata("S1_r3_c1_1", "Age", FieldType.NUMBER)
        assert validate_field_value(value, metadata).is_valid

    @pytest.mark.parametrize("value", ["abc", "nan", "inf", True, [1], 10 ** 400])
    def test_invalid_number(self, make_metadata, value):
        """Non-numeric, non-finite, out-of-range and boolean values fail."""
        metadata = make_metadata("S1_r3_c1_1", "Age", FieldType.NUMBER)

        result = validate_field_value(value, metadata)

        assert result.errors == ["Age must be a valid number"]

    @pytest.mark.parametrize("value", [
        "2024-01-15",
        "2024-01-15T10:30:00",
        "01/15/2024",
        "Jan 15, 2024",
        date(2024, 1, 15),
    ])
    def test_valid_date(self, make_metadata, value):
        """ISO strings, common formats and date objects pass."""
        metadata = make_metadata("S1_r3_c2_1", "Birthday", FieldType.DATE)
        assert validate_field_value(value, metadata).is_valid

    @pytest.mark.parametrize("value", ["not a date", "2024-13-45", 20240115])
    def test_invalid_date(self, make_metadata, value):
        """Non-dates fail."""
        metadata = make_metadata("S1_r3_c2_1", "Birthday", FieldType.DATE)

        result = validate_field_value(value, metadata)

        assert result.errors == ["Birthday must be a valid date"]

    def test_parse_date_value(self):
        """Parsing returns a calendar date or None."""
        assert parse_date_value("2024-02-29") == date(2024, 2, 29)
        assert parse_date_value("2023-02-29") is None
        assert parse_date_value("   ") is None


class TestChoices:
    """Tests for select, radio, checkbox and multiselect checks."""

    def test_select_valid(self, make_metadata):
        """A listed option passes."""
        metadata = make_metadata("S1_r2_c1_1", "Favorite Color", FieldType.SELECT, options=["red", "green"])
        assert validate_field_value("red", metadata).is_valid

    def test_select_invalid(self, make_metadata):
        """An unlisted option fails."""
        metadata = make_metadata("S1_r2_c1_1", "Favorite Color", FieldType.RADIO, options=["red", "green"])

        result = validate_field_value("purple", metadata)

        assert result.errors == ["Favorite Color must be one of the available options"]

    def test_select_without_options(self, make_metadata):
        """No configured options means no option check."""
        metadata = make_metadata("S1_r2_c1_1", "Favorite Color", FieldType.SELECT)
        assert validate_field_value("anything", metadata).is_valid

    def test_checkbox_lists_invalid_options(self, make_metadata):
        """Multi-choice errors name the unknown options."""
        metadata = make_metadata(
            "S1_r2_c2_1", "Ministries", FieldType.CHECKBOX, options=["Choir", "Ushers", "Youth"]
        )

        result = validate_field_value(["Choir", "Dance", "Drama"], metadata)

        assert result.errors == ["Ministries contains invalid options: Dance, Drama"]

    def test_multiselect_valid(self, make_metadata):
        """All listed options pass."""
        metadata = make_metadata("S1_r2_c2_1", "Skills", FieldType.MULTISELECT, options=["Music", "Tech"])
        assert validate_field_value(["Music", "Tech"], metadata).is_valid


class TestFiles:
    """Tests for file checks."""

    def _file_metadata(self, make_metadata, **settings):
        metadata = make_metadata("S1_r4_c1_1", "Upload", FieldType.FILE)
        metadata.file_settings = FileSettings(**settings)
        return metadata

    def test_accepted_extension(self, make_metadata):
        """Matching extensions pass."""
        metadata = self._file_metadata(make_metadata, accepted_file_types=[".pdf", ".png"])
        assert validate_field_value({"name": "scan.PNG", "size": 100}, metadata).is_valid

    def test_rejected_extension(self, make_metadata):
        """Other extensions fail with the accepted list."""
        metadata = self._file_metadata(make_metadata, accepted_file_types=[".pdf"])

        result = validate_field_value({"name": "scan.png", "size": 100}, metadata)

        assert result.errors == ["Upload must be one of these file types: .pdf"]

    def test_mime_wildcard(self, make_metadata):
        """MIME wildcards match the file's content type."""
        metadata = self._file_metadata(make_metadata, accepted_file_types=["image/*"])
        assert validate_field_value({"name": "photo", "type": "image/jpeg"}, metadata).is_valid

    def test_url_value(self, make_metadata):
        """Stored URLs are checked by their path."""
        metadata = self._file_metadata(make_metadata, accepted_file_types=[".pdf"])
        value = "https://files.example.org/uploads/form.pdf?token=abc"
        assert validate_field_value(value, metadata).is_valid

    def test_default_size_limit(self, make_metadata):
        """Files over 10 MB fail by default."""
        metadata = self._file_metadata(make_metadata)

        result = validate_field_value({"name": "big.pdf", "size": 20 * 1024 * 1024}, metadata)

        assert result.errors == ["Upload file size must be less than 10.0 MB"]

    def test_configured_size_limit(self, make_metadata):
        """A configured maximum overrides the default."""
        metadata = self._file_metadata(make_metadata, max_file_size=1024)

        result = validate_field_value([{"name": "a.pdf", "size": 2048}], metadata)

        assert result.errors == ["Upload file size must be less than 1.0 KB"]


class TestConfiguredRules:
    """Tests for min/max length and pattern rules."""

    def _text_metadata(self, make_metadata, **rules):
        metadata = make_metadata("S1_r1_c2_1", "Full Name", FieldType.TEXT)
        metadata.validation = ValidationRules(**rules)
        return metadata

    def test_min_length(self, make_metadata):
        metadata = self._text_metadata(make_metadata, min_length=3)
        assert validate_field_value("Al", metadata).errors == ["Full Name must be at least 3 characters"]

    def test_max_length(self, make_metadata):
        metadata = self._text_metadata(make_metadata, max_length=5)
        assert validate_field_value("Bartholomew", metadata).errors == ["Full Name must be at most 5 characters"]

    def test_pattern(self, make_metadata):
        """Patterns must match the whole value."""
        metadata = self._text_metadata(make_metadata, pattern=r"[A-Z][a-z]+")

        assert validate_field_value("Grace", metadata).is_valid
        assert validate_field_value("Grace Hopper", metadata).errors == ["Full Name has an invalid format"]

    def test_invalid_pattern_ignored(self, make_metadata):
        """A broken pattern is logged and skipped."""
        metadata = self._text_metadata(make_metadata, pattern="([")
        assert validate_field_value("anything", metadata).is_valid


class TestValidateSavedFormData:
    """Tests for whole-record validation."""

    def test_valid_record(self, schema, make_saved, now):
        """A record with a valid required email passes."""
        saved = make_saved([("S1_r1_c1_1000", "a@b.com", None)])

        result = validate_saved_form_data(saved, schema, FieldMappingConfig(), now=now)

        assert result.is_valid
        assert result.field_results["S1_r1_c1_1000"].is_valid
        assert result.global_errors == []
        assert result.summary.total_fields == 1
        assert result.summary.valid_fields == 1

    def test_required_field_missing(self, schema, make_saved, now):
        """A required schema field with no saved value fails the form."""
        saved = make_saved([("S1_r1_c2_1", "Jane Doe", None)])

        result = validate_saved_form_data(saved, schema, FieldMappingConfig(), now=now)

        assert result.is_valid is False
        assert result.summary.missing_required_fields == 1
        assert result.global_errors == ["1 required field(s) are missing values: Email"]

    def test_invalid_field(self, schema, make_saved, now):
        """Field errors appear per identity."""
        saved = make_saved([
            ("S1_r1_c1_1", "nope", None),
            ("S1_r2_c1_1", "purple", None),
        ])

        result = validate_saved_form_data(saved, schema, FieldMappingConfig(), now=now)

        assert result.is_valid is False
        assert result.summary.invalid_fields == 2
        assert result.field_errors == {
            "S1_r1_c1_1": "Email must be a valid email address",
            "S1_r2_c1_1": "Favorite Color must be one of the available options",
        }

    def test_orphans_only_warn(self, schema, make_saved, make_metadata, days_ago, now):
        """Orphaned values add a global warning but do not fail the form."""
        saved = make_saved([
            ("S1_r1_c1_1", "a@b.com", None),
            ("S1_r9_c1_1", "old", make_metadata("S1_r9_c1_1", "Gone"), days_ago(3)),
        ])

        result = validate_saved_form_data(saved, schema, FieldMappingConfig(), now=now)

        assert result.is_valid
        assert result.summary.orphaned_fields == 1
        assert result.global_warnings == [
            "1 field(s) from saved data no longer exist in the current form"
        ]
        assert "S1_r9_c1_1" not in result.field_results

    def test_validity_ignores_timestamp(self, schema, make_saved, now):
        """Validation outcome depends on position, not on the identity's marker."""
        first = make_saved([("S1_r1_c1_1", "a@b.com", None)])
        second = make_saved([("S1_r1_c1_999", "a@b.com", None)])

        assert validate_saved_form_data(first, schema, FieldMappingConfig(), now=now).is_valid
        assert validate_saved_form_data(second, schema, FieldMappingConfig(), now=now).is_valid

    def test_warnings_surface(self, schema_dict, make_saved, now):
        """Phone warnings are reported per field without failing the form."""
        from src.custom_fields.types import FormSchema

        schema_dict["rows"][0]["columns"][1]["component"] = {
            "id": "cmp-phone", "type": "phone", "label": "Phone",
        }
        schema = FormSchema.from_dict(schema_dict)
        saved = make_saved([
            ("S1_r1_c1_1", "a@b.com", None),
            ("S1_r1_c2_1", "call me", None),
        ])

        result = validate_saved_form_data(saved, schema, FieldMappingConfig(), now=now)

        assert result.is_valid
        assert result.field_warnings == {"S1_r1_c2_1": "Phone may not be a valid phone number"}


class TestValidateSavedField:
    """Tests for single-field validation."""

    def test_absent_field_is_valid(self, schema, make_saved):
        """Validating an identity that was never saved passes."""
        saved = make_saved([])
        assert validate_saved_field(saved, "S1_r1_c1_1", schema).is_valid

    def test_field_not_in_schema(self, schema, make_saved):
        """A saved field whose position is gone fails."""
        saved = make_saved([("S1_r9_c1_1", "x", None)])

        result = validate_saved_field(saved, "S1_r9_c1_1", schema)

        assert result.errors == ["Field not found in schema"]

    def test_field_checked_against_current_metadata(self, schema, make_saved):
        """The current schema definition decides the rules."""
        saved = make_saved([("S1_r1_c1_1", "nope", None)])

        result = validate_saved_field(saved, "S1_r1_c1_1", schema)

        assert result.errors == ["Email must be a valid email address"]
