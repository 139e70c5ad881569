"""Tests for WHERE-clause construction and sort validation.

Key behaviors tested:
- No predicates produce an empty clause and no parameters
- Placeholders and parameters correspond 1:1 and in order
- Empty text predicates are ignored, False and 0 are not
- Free-text search is parenthesized inside the AND chain
- Unknown sort fields fall back to user_name
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from profilestore.store import ProfileFilter, WhereClause, build_where, validate_sort_field
from profilestore.store._query import validate_group_fields, validate_sort_order


class TestBuildWhere:
    """Tests for build_where."""

    def test_no_filters(self) -> None:
        assert build_where(None) == WhereClause("", ())
        assert build_where({}) == WhereClause("", ())

    def test_placeholder_count_matches_params(self) -> None:
        where = build_where(
            {
                "user_name": "al",
                "is_verified": True,
                "min_followers": 10,
                "max_followers": 100,
                "search_text": "x",
            }
        )
        assert where.sql.count("?") == len(where.params)

    def test_substring_and_flag(self) -> None:
        where = build_where({"user_name": "ali", "is_verified": True})
        assert where.sql == "WHERE user_name LIKE ? AND is_verified = ?"
        assert where.params == ("%ali%", 1)

    def test_false_and_zero_are_significant(self) -> None:
        where = build_where({"is_verified": False, "followed_by_you": 0})
        assert where.sql == "WHERE is_verified = ? AND followed_by_you = ?"
        assert where.params == (0, 0)

    def test_followed_by_you_matched_as_flag(self) -> None:
        where = build_where({"followed_by_you": 5})
        assert where.sql == "WHERE followed_by_you = ?"
        assert where.params == (1,)

    def test_empty_text_is_ignored(self) -> None:
        where = build_where({"user_name": "", "city": "", "search_text": ""})
        assert where == WhereClause()

    def test_search_text_is_parenthesized(self) -> None:
        where = build_where({"search_text": "ann", "is_business": True})
        assert where.sql == (
            "WHERE is_business = ? AND (user_name LIKE ? OR full_name LIKE ?)"
        )
        assert where.params == (1, "%ann%", "%ann%")

    def test_date_ranges_use_engine_format(self) -> None:
        where = build_where(
            ProfileFilter(
                created_after=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
                born_before=date(2000, 12, 31),
            )
        )
        assert where.sql == "WHERE created_at >= ? AND date_of_birth <= ?"
        assert where.params == ("2024-01-02 03:04:05", "2000-12-31")

    def test_aware_datetime_converted_to_utc(self) -> None:
        tz = timezone(timedelta(hours=2))
        where = build_where({"last_login_before": datetime(2024, 6, 1, 12, 0, tzinfo=tz)})
        assert where.params == ("2024-06-01 10:00:00",)

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            build_where({"password": "x"})

    def test_and_appends_condition(self) -> None:
        base = build_where({"city": "Berlin"})
        extended = base.and_("is_verified = ?", 1)
        assert extended.sql == "WHERE city = ? AND is_verified = ?"
        assert extended.params == ("Berlin", 1)
        assert base.params == ("Berlin",)

    def test_and_on_empty_clause(self) -> None:
        assert WhereClause().and_("x = ?", 1) == WhereClause("WHERE x = ?", (1,))


class TestSortValidation:
    """Tests for sort field and order validation."""

    @pytest.mark.parametrize("field", ["followers", "created_at", "id"])
    def test_allowed_fields_pass(self, field: str) -> None:
        assert validate_sort_field(field) == field

    @pytest.mark.parametrize(
        "field", ["password", "user_name; DROP TABLE users", "", None, "email"]
    )
    def test_unknown_fields_fall_back(self, field: str | None) -> None:
        assert validate_sort_field(field) == "user_name"

    def test_sort_order(self) -> None:
        assert validate_sort_order("desc") == "DESC"
        assert validate_sort_order("ASC") == "ASC"
        assert validate_sort_order("sideways") == "ASC"
        assert validate_sort_order(None) == "ASC"


class TestGroupFields:
    """Tests for deduplication field validation."""

    def test_single_name(self) -> None:
        assert validate_group_fields("user_name") == ["user_name"]

    def test_multiple_names(self) -> None:
        assert validate_group_fields(("user_name", "email")) == ["user_name", "email"]

    def test_unknown_rejected(self) -> None:
        with pytest.raises(ValueError, match="unknown fields"):
            validate_group_fields(["user_name", "nope"])

    def test_empty_rejected(self) -> None:
        with pytest.raises(ValueError):
            validate_group_fields([])
