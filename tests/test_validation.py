import pytest

from app.core.errors import ValidationFailed, ValidationFailure
from app.features.documents.validation import InputValidator, json_depth, serialized_size


def nested(levels: int, leaf="leaf"):
    value = leaf
    for _ in range(levels):
        value = {"nested": value}
    return value


@pytest.fixture
def validator():
    return InputValidator(max_depth=10, max_content_bytes=50 * 1024)


class TestDepth:

    @pytest.mark.parametrize("value, expected", [
        ("text", 0),
        (42, 0),
        (None, 0),
        ({}, 1),
        ([], 1),
        ({"a": 1}, 1),
        ({"a": [1, 2]}, 2),
        ([{"a": {}}], 3),
    ])
    def test_depth_convention(self, value, expected):
        assert json_depth(value) == expected

    def test_ten_wrappers_is_depth_ten(self):
        assert json_depth(nested(10)) == 10

    def test_max_depth_is_accepted(self, validator):
        assert validator.check_depth(nested(10)).ok

    def test_one_past_max_depth_is_rejected(self, validator):
        result = validator.check_depth(nested(11))

        assert not result.ok
        assert result.failure is ValidationFailure.TOO_DEEP
        assert result.field == "content"

    def test_deep_hostile_input_stops_early(self):
        assert json_depth(nested(5000), limit=10) == 11


class TestSize:

    def test_exact_limit_is_accepted(self, validator):
        # Two bytes for the JSON quotes
        content = "x" * (50 * 1024 - 2)
        assert serialized_size(content) == 50 * 1024

        assert validator.check_size(content).ok

    def test_one_byte_over_is_rejected(self, validator):
        content = "x" * (50 * 1024 - 1)

        result = validator.check_size(content)

        assert result.failure is ValidationFailure.TOO_LARGE

    def test_size_counts_utf8_bytes(self):
        assert serialized_size("é") == 4
        assert serialized_size({"a": [1, 2]}) == len('{"a":[1,2]}')

    def test_depth_is_checked_before_size(self, validator):
        result = validator.check_content(nested(11, leaf="x" * 60000))

        assert result.failure is ValidationFailure.TOO_DEEP


class TestCreate:

    def test_valid(self, validator):
        assert validator.validate_create({"title": "Reduce scrap", "department_id": "d1"}).ok

    @pytest.mark.parametrize("payload", [
        {"department_id": "d1"},
        {"title": None, "department_id": "d1"},
        {"title": "   ", "department_id": "d1"},
    ])
    def test_missing_title(self, validator, payload):
        result = validator.validate_create(payload)

        assert result.failure is ValidationFailure.MISSING_FIELD
        assert result.field == "title"

    def test_title_length_is_measured_after_trimming(self, validator):
        assert validator.validate_create({"title": "  " + "t" * 200 + "  ", "department_id": "d"}).ok

        result = validator.validate_create({"title": "t" * 201, "department_id": "d"})
        assert result.failure is ValidationFailure.INVALID_VALUE

    def test_missing_department(self, validator):
        result = validator.validate_create({"title": "T"})

        assert result.failure is ValidationFailure.MISSING_FIELD
        assert result.field == "department_id"

    def test_description_too_long(self, validator):
        result = validator.validate_create({"title": "T", "department_id": "d", "description": "d" * 2001})

        assert result.failure is ValidationFailure.INVALID_VALUE
        assert result.field == "description"

    def test_non_object_payload(self, validator):
        assert validator.validate_create(["title"]).failure is ValidationFailure.INVALID_VALUE


class TestUpdate:

    def test_empty_update_is_rejected(self, validator):
        assert validator.validate_update({}).failure is ValidationFailure.MISSING_FIELD

    def test_unknown_status(self, validator):
        result = validator.validate_update({"status": "done"})

        assert result.failure is ValidationFailure.INVALID_VALUE
        assert result.field == "status"

    def test_description_only(self, validator):
        assert validator.validate_update({"description": None}).ok

    def test_blank_title(self, validator):
        assert validator.validate_update({"title": ""}).failure is ValidationFailure.MISSING_FIELD


class TestSection:

    @pytest.mark.parametrize("number", [0, 9, -1, True, "3"])
    def test_section_number_out_of_range(self, validator, number):
        result = validator.validate_section(number, {"content": "x"})

        assert result.failure is ValidationFailure.INVALID_VALUE
        assert result.field == "section_number"

    def test_content_required(self, validator):
        assert validator.validate_section(1, {"completed": True}).failure is ValidationFailure.MISSING_FIELD

    def test_null_content_clears_section(self, validator):
        assert validator.validate_section(1, {"content": None}).ok

    def test_completed_must_be_bool(self, validator):
        result = validator.validate_section(1, {"content": "x", "completed": "yes"})

        assert result.failure is ValidationFailure.INVALID_VALUE

    def test_content_depth_boundary(self, validator):
        assert validator.validate_section(2, {"content": nested(10)}).ok
        assert validator.validate_section(2, {"content": nested(11)}).failure is ValidationFailure.TOO_DEEP


def test_raise_for_failure_carries_category(validator):
    with pytest.raises(ValidationFailed) as excinfo:
        validator.validate_create({"department_id": "d"}).raise_for_failure()

    assert excinfo.value.reason is ValidationFailure.MISSING_FIELD
    assert excinfo.value.field == "title"


class TestUnencodableText:

    @pytest.mark.parametrize("payload, field", [
        ({"title": "\ud800", "department_id": "d"}, "title"),
        ({"title": "T", "description": "bad \udc00", "department_id": "d"}, "description"),
        ({"title": "T", "department_id": "\ud800"}, "department_id"),
    ])
    def test_lone_surrogates_are_invalid(self, validator, payload, field):
        result = validator.validate_create(payload)

        assert result.failure is ValidationFailure.INVALID_VALUE
        assert result.field == field

    def test_lone_surrogate_in_section_content(self, validator):
        result = validator.validate_section(1, {"content": {"note": "\ud800"}})

        assert result.failure is ValidationFailure.INVALID_VALUE
        assert result.field == "content"


class TestExplicitNulls:

    def test_null_title_on_update(self, validator):
        result = validator.validate_update({"title": None})

        assert result.failure is ValidationFailure.INVALID_VALUE
        assert result.field == "title"

    def test_null_status_on_update(self, validator):
        assert validator.validate_update({"status": None}).failure is ValidationFailure.INVALID_VALUE

    @pytest.mark.parametrize("status", [5, ["draft"], {"value": "draft"}])
    def test_non_string_status(self, validator, status):
        assert validator.validate_update({"status": status}).failure is ValidationFailure.INVALID_VALUE
