import pytest

from services.workers.eda.core.errors import InvalidInputError
from services.workers.eda.nodes.clean import clean_table


def test_duplicate_rows_are_removed_and_partial_rows_kept():
    table = [{"a": 1, "b": 2}, {"a": 1, "b": 2}, {"a": 3, "b": None}]

    rows, columns, report = clean_table(table)

    assert columns == ["a", "b"]
    assert rows == [{"a": 1, "b": 2}, {"a": 3, "b": None}]
    assert report.original_rows == 3
    assert report.duplicates_removed == 1
    assert report.invalid_rows_removed == 0
    assert report.final_rows == 2
    assert report.missing_values_per_column == {"b": {"count": 1, "percentage": 50.0}}


def test_cells_are_normalised():
    table = [
        {
            "padded": " 42 ",
            "na": "N/A",
            "null_text": "null",
            "blank": "",
            "text": "  north ",
            "decimal": "3.5",
            "exponent": "1e3",
            "none": None,
            "flag": True,
            "float_int": 7.0,
            "odd": "1_000",
        }
    ]

    rows, _, _ = clean_table(table)

    assert rows == [
        {
            "padded": 42,
            "na": None,
            "null_text": None,
            "blank": None,
            "text": "north",
            "decimal": 3.5,
            "exponent": 1000,
            "none": None,
            "flag": "true",
            "float_int": 7,
            "odd": "1_000",
        }
    ]


def test_non_finite_values_become_missing_or_text():
    rows, _, report = clean_table([{"x": float("nan"), "y": "1e999", "z": 1}])

    assert rows == [{"x": None, "y": "1e999", "z": 1}]
    assert report.missing_values_per_column == {"x": {"count": 1, "percentage": 100.0}}


def test_all_null_rows_are_dropped():
    table = [
        {"a": 1, "b": "x"},
        {"a": "N/A", "b": ""},
        {"a": None, "b": "null"},
        {"a": 2, "b": "y"},
    ]

    rows, _, report = clean_table(table)

    assert rows == [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]
    # the two all-null rows normalise to the same row, so one counts as a duplicate
    assert report.duplicates_removed == 1
    assert report.invalid_rows_removed == 1
    assert report.final_rows == 2


def test_ragged_rows_are_padded_in_first_seen_column_order():
    rows, columns, report = clean_table([{"b": 1}, {"a": "x", "b": 2}, {"c": 3.25}])

    assert columns == ["b", "a", "c"]
    assert rows == [
        {"b": 1, "a": None, "c": None},
        {"b": 2, "a": "x", "c": None},
        {"b": None, "a": None, "c": 3.25},
    ]
    assert report.missing_values_per_column["a"] == {"count": 2, "percentage": 66.67}


def test_numeric_text_and_numbers_deduplicate_together():
    _, _, report = clean_table([{"a": "3", "b": " x"}, {"a": 3, "b": "x"}, {"a": 3.0, "b": "x "}])

    assert report.duplicates_removed == 2
    assert report.final_rows == 1


@pytest.mark.parametrize("copies", [0, 1, 5])
def test_unique_row_count_matches_duplicates(copies):
    base = [{"id": index, "value": f"v{index}"} for index in range(6)]
    table = base + [dict(base[index % len(base)]) for index in range(copies)]

    rows, _, report = clean_table(table)

    assert len(rows) == len(table) - copies
    assert report.duplicates_removed == copies


def test_cleaning_is_idempotent():
    table = [
        {"a": " 1", "b": "N/A", "c": "text "},
        {"a": 1, "b": None, "c": "text"},
        {"a": "2.50", "c": ""},
        {"a": None, "b": "", "c": None},
        {"d": False},
    ]

    once, columns, _ = clean_table(table)
    twice, columns_again, report = clean_table(once)

    assert twice == once
    assert columns_again == columns
    assert report.duplicates_removed == 0
    assert report.invalid_rows_removed == 0


def test_non_string_keys_are_stringified():
    rows, columns, _ = clean_table([{1: "a", "2": "b"}])

    assert columns == ["1", "2"]
    assert rows == [{"1": "a", "2": "b"}]


@pytest.mark.parametrize(
    "table",
    [None, [], "a,b\n1,2", {"a": 1}, [1, 2], [{"a": 1}, "row"], 42],
)
def test_invalid_tables_are_rejected(table):
    with pytest.raises(InvalidInputError):
        clean_table(table)
