import pytest

from tabular_3nf_normalizer import (
    FunctionalDependency,
    NormalizationPipeline,
    SAMPLE_ROWS,
    Table,
    analyze_and_normalize,
    build_third_nf,
    find_multivalued_columns,
    migrate_transitive,
    result_to_dict,
    unique_rows,
)


ENROLMENTS = [
    {"student": "s1", "course": "c1", "student_name": "Ann", "grade": "A"},
    {"student": "s1", "course": "c2", "student_name": "Ann", "grade": "B"},
    {"student": "s2", "course": "c1", "student_name": "Bob", "grade": "A"},
    {"student": "s2", "course": "c2", "student_name": "Bob", "grade": "C"},
]

ADDRESSES = [
    {"id": "1", "zip": "10001", "city": "New York", "region": "East"},
    {"id": "2", "zip": "10001", "city": "New York", "region": "East"},
    {"id": "3", "zip": "94105", "city": "San Francisco", "region": "West"},
]


def all_columns(tables):
    return {c for t in tables for c in t.columns}


def test_empty_dataset():
    result = analyze_and_normalize([], "nothing")
    for stage in ("unf", "1nf", "2nf", "3nf"):
        assert result.stage(stage) == []
    assert result.dependencies == []
    assert result.candidate_keys == []
    assert result.warnings == ["empty dataset"]


def test_tv_sample_end_to_end():
    result = analyze_and_normalize(SAMPLE_ROWS, "tv")

    assert len(result.unf) == 1
    unf = result.unf[0]
    assert unf.name == "tv"
    assert unf.columns == ["channel", "show", "genre", "network", "day"]
    assert unf.rows == SAMPLE_ROWS

    assert FunctionalDependency(lhs=("channel",), rhs="network") in result.dependencies
    assert ("channel",) in result.candidate_keys
    assert result.first_nf == result.unf
    assert result.warnings == []

    # Every determinant is a whole key here, so nothing is carved out.
    assert [t.name for t in result.second_nf] == ["tv_main"]
    assert result.second_nf[0].columns == unf.columns
    assert result.third_nf == result.second_nf


def test_partial_dependencies_split_second_nf():
    result = NormalizationPipeline("enrolment").run(ENROLMENTS)

    names = [t.name for t in result.second_nf]
    assert names == [
        "enrolment_main",
        "tbl_student_student_name_partial",
        "tbl_student_name_student_partial",
        "tbl_grade_course_partial",
    ]
    main, student, name, grade = result.second_nf
    assert main.columns == ["grade"]
    assert [r["grade"] for r in main.rows] == ["A", "B", "C"]
    assert student.columns == ["student", "student_name"]
    assert student.rows == [{"student": "s1", "student_name": "Ann"}, {"student": "s2", "student_name": "Bob"}]
    assert name.columns == ["student_name", "student"]
    assert grade.rows == [{"grade": "A", "course": "c1"}, {"grade": "B", "course": "c2"}, {"grade": "C", "course": "c2"}]

    assert all_columns(result.second_nf) == set(result.unf[0].columns)
    assert all_columns(result.third_nf) >= set(result.unf[0].columns)


def test_missing_key_warning():
    result = NormalizationPipeline("enrolment", max_key_size=1).run(ENROLMENTS)
    assert result.candidate_keys == []
    assert "no candidate key found within size limit" in result.warnings
    # With no keys nothing is partial, so 2NF is just the deduplicated main table.
    assert [t.name for t in result.second_nf] == ["enrolment_main"]


def test_ragged_rows_get_nulls():
    rows = [{"a": "1", "b": "x"}, {"a": "2"}, {"a": "3", "b": "z", "extra": "ignored"}]
    result = analyze_and_normalize(rows, "ragged")
    assert result.unf[0].rows == [{"a": "1", "b": "x"}, {"a": "2", "b": None}, {"a": "3", "b": "z"}]


def test_multivalued_columns_only_warn():
    rows = [
        {"show": "Narcos", "cast": "Wagner Moura, Boyd Holbrook"},
        {"show": "Dark", "cast": "Louis Hofmann"},
    ]
    assert find_multivalued_columns(rows, ["show", "cast"]) == ["cast"]

    result = analyze_and_normalize(rows, "shows")
    assert any("'cast'" in w for w in result.warnings)
    assert result.first_nf[0].rows == result.unf[0].rows


def test_unique_rows_is_idempotent():
    once = unique_rows(ADDRESSES, ["zip", "city"])
    assert once == [{"zip": "10001", "city": "New York"}, {"zip": "94105", "city": "San Francisco"}]
    assert unique_rows(once, ["zip", "city"]) == once

    result = NormalizationPipeline("enrolment").run(ENROLMENTS)
    for table in result.second_nf + result.third_nf:
        assert Table.project(table.name, table.columns, table.rows).rows == table.rows


def test_unique_rows_treats_null_as_empty():
    rows = [{"a": None}, {"a": ""}, {"b": "x"}]
    assert unique_rows(rows, ["a"]) == [{"a": None}]


def test_migrate_transitive_moves_column():
    main = Table.project("people", ["id", "zip", "city"], ADDRESSES)
    tables = migrate_transitive([main], FunctionalDependency(lhs=("zip",), rhs="city"), ADDRESSES)

    assert [t.name for t in tables] == ["people", "tbl_zip_city_transitive"]
    assert tables[0].columns == ["id", "zip"]
    assert len(tables[0].rows) == 3
    assert tables[1].columns == ["zip", "city"]
    assert len(tables[1].rows) == 2
    # The input table is left untouched.
    assert main.columns == ["id", "zip", "city"]


def test_third_nf_fold_order_matters():
    main = Table.project("people", ["id", "zip", "city", "region"], ADDRESSES)
    zip_city = FunctionalDependency(lhs=("zip",), rhs="city")
    region_city = FunctionalDependency(lhs=("region",), rhs="city")

    tables = build_third_nf([main], [zip_city, region_city], ADDRESSES)
    assert [t.name for t in tables] == ["people", "tbl_zip_city_transitive", "tbl_region_city_transitive"]
    assert tables[0].columns == ["id", "zip", "region"]
    # The table carved by the first step loses city to the second one.
    assert tables[1].columns == ["zip"]
    assert tables[2].columns == ["region", "city"]

    reversed_order = build_third_nf([main], [region_city, zip_city], ADDRESSES)
    assert [t.columns for t in reversed_order] == [["id", "zip", "region"], ["region"], ["zip", "city"]]


def test_third_nf_drops_emptied_tables():
    cities = Table.project("cities", ["city"], ADDRESSES)
    tables = build_third_nf([cities], [FunctionalDependency(lhs=("zip",), rhs="city")], ADDRESSES)
    assert [t.name for t in tables] == ["tbl_zip_city_transitive"]


def test_third_nf_without_transitive_is_a_copy():
    main = Table.project("people", ["id", "zip"], ADDRESSES)
    second = [main]
    third = build_third_nf(second, [], ADDRESSES)
    assert third == second
    assert third is not second


def test_result_to_dict_shape():
    payload = result_to_dict(analyze_and_normalize(SAMPLE_ROWS, "tv"))
    assert set(payload) == {"unf", "1nf", "2nf", "3nf", "dependencies", "candidateKeys", "warnings"}
    assert payload["unf"]["tables"][0]["columns"] == ["channel", "show", "genre", "network", "day"]
    assert {"lhs": ["channel"], "rhs": "network"} in payload["dependencies"]
    assert ["channel"] in payload["candidateKeys"]


def test_unknown_stage():
    result = analyze_and_normalize(SAMPLE_ROWS, "tv")
    with pytest.raises(ValueError):
        result.stage("bcnf")
