"""Tests for the SQL produced by build_search_query."""

from decimal import Decimal

import pytest

from lightbnb.db.models import PropertySearchFilters
from lightbnb.db.repositories import build_search_query


def test_no_filters_only_binds_limit():
    query, params = build_search_query()

    assert params == [10]
    assert "WHERE" not in query
    assert "HAVING" not in query
    assert "GROUP BY properties.id" in query
    assert query.rstrip().endswith("LIMIT ?")


def test_prices_are_bound_in_cents():
    _, params = build_search_query(
        PropertySearchFilters(
            minimum_price_per_night=Decimal("10.5"),
            maximum_price_per_night=200,
        ),
        limit=5,
    )
    assert params == [1050, 20000, 5]


def test_parameters_follow_clause_order():
    query, params = build_search_query(
        PropertySearchFilters(
            city="Van",
            owner_id=7,
            minimum_price_per_night=1,
            maximum_price_per_night=2,
            minimum_rating=4,
        ),
        limit=3,
    )

    assert params == ["Van", 7, 100, 200, 4, 3]
    assert query.count("?") == len(params)
    assert query.index("WHERE") < query.index("GROUP BY") < query.index("HAVING")
    assert query.index("HAVING") < query.index("ORDER BY")


def test_rating_filter_is_applied_after_grouping():
    query, params = build_search_query(PropertySearchFilters(minimum_rating=3))

    assert "WHERE" not in query
    assert "HAVING AVG(property_reviews.rating) >= ?" in query
    assert params == [3, 10]


def test_city_value_is_bound_not_interpolated():
    query, params = build_search_query(PropertySearchFilters(city="x'; DROP TABLE users; --"))
    assert "DROP TABLE" not in query
    assert params[0] == "x'; DROP TABLE users; --"


def test_negative_limit_is_rejected():
    with pytest.raises(ValueError):
        build_search_query(limit=-5)


@pytest.mark.parametrize(
    "minimum, maximum, expected",
    [
        (Decimal("150.004"), Decimal("150.005"), [15001, 15000]),
        (Decimal("150.001"), Decimal("150.009"), [15001, 15000]),
        (Decimal("150.00"), Decimal("150.00"), [15000, 15000]),
    ],
)
def test_sub_cent_price_bounds_stay_inside_the_range(minimum, maximum, expected):
    _, params = build_search_query(
        PropertySearchFilters(minimum_price_per_night=minimum, maximum_price_per_night=maximum)
    )
    assert params[:2] == expected
