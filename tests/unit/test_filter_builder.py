"""
Unit tests for FilterBuilder and LIKE escaping.
"""

import pytest

from app.query import FilterBuilder, escape_like


class TestEscapeLike:

    def test_wildcards_are_escaped(self):
        assert escape_like("100%") == "100!%"
        assert escape_like("a_b") == "a!_b"
        assert escape_like("wow!") == "wow!!"
        assert escape_like("plain") == "plain"


class TestFilterBuilder:

    def test_no_filters_renders_base_query(self):
        template, params = FilterBuilder("SELECT * FROM Campaigns c").render()
        assert template == "SELECT * FROM Campaigns c"
        assert params == {}

    def test_empty_values_add_no_clause(self):
        builder = FilterBuilder("SELECT * FROM Campaigns c")
        builder.where_equals("c.status", "status", None)
        builder.where_equals("c.category_id", "category_id", "")
        builder.where_contains(["c.campaign_title"], "search", "   ")
        template, params = builder.render()
        assert "WHERE" not in template
        assert params == {}

    def test_filters_are_anded_with_bound_values(self):
        builder = FilterBuilder("SELECT * FROM Campaigns c")
        builder.where_equals("c.status", "status", "active").where_equals("c.category_id", "category_id", 2)
        template, params = builder.render()

        assert "WHERE c.status = :status AND c.category_id = :category_id" in template
        assert params == {"status": "active", "category_id": 2}
        assert "active" not in template

    def test_contains_lowers_and_escapes_term(self):
        builder = FilterBuilder("SELECT * FROM Campaigns c")
        builder.where_contains(["c.campaign_title", "c.description"], "search", " 50% Off ")
        template, params = builder.render()

        assert "LOWER(c.campaign_title) LIKE :search ESCAPE '!'" in template
        assert "OR LOWER(c.description) LIKE :search ESCAPE '!'" in template
        assert params == {"search": "%50!% off%"}

    def test_existing_where_clause(self):
        builder = FilterBuilder("SELECT * FROM Donations d WHERE d.status = 'completed'", has_where=True)
        builder.where_equals("d.campaign_id", "campaign_id", 7)
        template, _ = builder.render()
        assert template.endswith("AND d.campaign_id = :campaign_id")

    def test_order_and_pagination(self):
        builder = FilterBuilder("SELECT * FROM Campaigns c").order_by("c.created_at DESC").paginate(10, 20)
        template, params = builder.render()
        assert template.splitlines()[-2:] == ["ORDER BY c.created_at DESC", "LIMIT :limit OFFSET :offset"]
        assert params == {"limit": 10, "offset": 20}

    def test_injection_attempt_stays_in_params(self):
        builder = FilterBuilder("SELECT * FROM Campaigns c")
        builder.where_contains(["c.campaign_title"], "search", "' OR '1'='1")
        template, params = builder.render()
        assert "'1'='1" not in template
        assert params["search"] == "%' or '1'='1%"

    def test_conflicting_parameter_values(self):
        builder = FilterBuilder("SELECT * FROM Campaigns c")
        builder.where("c.goal_amount > :amount", amount=10).where("c.current_amount < :amount", amount=20)
        with pytest.raises(ValueError):
            builder.render()
