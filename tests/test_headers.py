import pytest

from regadmin.importing.headers import (
    COLUMN_MAP,
    apply_overrides,
    build_column_index,
    map_columns,
    normalize_header,
)


@pytest.mark.parametrize(
    "raw",
    [
        "Email Address",
        "  EMAIL   address ",
        "Email\nAddress",
        "Name of Church\r\nwhere you attend",
        "",
        "Vocation/Work Sphere - Business/Economics",
    ],
)
def test_normalize_header_is_idempotent(raw):
    once = normalize_header(raw)
    assert normalize_header(once) == once


def test_normalize_header_ignores_case_whitespace_and_newlines():
    variants = ["Email Address", "email address", "EMAIL    ADDRESS", "Email\nAddress", " Email \n  Address "]
    assert {normalize_header(v) for v in variants} == {"email address"}


def test_normalize_header_none_is_empty():
    assert normalize_header(None) == ""


def test_build_column_index_skips_blank_headers():
    headers = build_column_index({"A": "Last Name", "B": None, "C": "  ", "D": "First Name"})
    assert [h.column for h in headers] == ["A", "D"]
    assert headers[0].normalized == "last name"


def test_map_columns_known_headers():
    headers = build_column_index(
        {
            "A": "Email Address",
            "B": "First Name",
            "C": "Last Name",
            "D": "Something Else",
            "E": "Email Confrimation TN Secretariat",
        }
    )
    mapping = map_columns(headers)
    assert mapping.fields == {
        "email": "A",
        "first_name": "B",
        "last_name": "C",
        "email_confirmed": "E",
    }
    assert [h.column for h in mapping.unmapped] == ["D"]


def test_map_columns_first_column_wins_for_duplicate_field():
    headers = build_column_index({"A": "Email", "B": "Email Address"})
    mapping = map_columns(headers)
    assert mapping.column_for("email") == "A"
    assert [h.column for h in mapping.unmapped] == ["B"]


def test_map_columns_custom_table():
    headers = build_column_index({"A": "Surname"})
    mapping = map_columns(headers, {"surname": "last_name"})
    assert mapping.field_for("A") == "last_name"


def test_missing_expected_headers():
    mapping = map_columns(build_column_index({"A": "Email Address", "B": "First Name"}))
    missing = mapping.missing_expected()
    assert "last name" in missing
    assert "email address" not in missing


def test_apply_overrides_retarget_and_unmap():
    headers = build_column_index({"A": "Email Address", "B": "First Name", "C": "Surname"})
    mapping = map_columns(headers)

    result = apply_overrides(mapping, {"c": "last_name", "A": "-"})
    assert result.fields == {"first_name": "B", "last_name": "C"}
    assert [h.column for h in result.unmapped] == ["A"]
    # original is untouched
    assert mapping.column_for("email") == "A"


def test_apply_overrides_moves_field_between_columns():
    headers = build_column_index({"A": "Email Address", "B": "Contact"})
    mapping = apply_overrides(map_columns(headers), {"B": "email"})
    assert mapping.column_for("email") == "B"
    assert mapping.field_for("A") is None


def test_apply_overrides_rejects_unknown_field():
    mapping = map_columns(build_column_index({"A": "Email Address"}))
    with pytest.raises(ValueError):
        apply_overrides(mapping, {"A": "favourite_colour"})


def test_every_mapped_header_is_already_normalized():
    for header in COLUMN_MAP:
        assert normalize_header(header) == header
