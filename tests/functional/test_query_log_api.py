"""
API tests for the query log: every statement a page runs is recorded with its page and session.
"""

from fastapi.testclient import TestClient

from app.core.config import SESSION_COOKIE_NAME


class TestQueryLogRecording:
    """Test what ends up in Query_Log"""

    def test_report_run_is_logged_with_session(self, client: TestClient, sample_data):
        """The logged entry carries the report's page label and the client's session cookie"""
        response = client.get("/api/reports/platform_statistics")
        session_id = response.cookies.get(SESSION_COOKIE_NAME)
        assert session_id

        entries = client.get("/api/query-log/recent").json()
        assert len(entries) == 1
        assert entries[0]["inferred_type"] == "SELECT"
        assert entries[0]["caller_label"] == "analytics"
        assert entries[0]["session_id"] == session_id
        assert entries[0]["affected_rows"] == 1
        assert entries[0]["elapsed_seconds"] >= 0

    def test_session_cookie_is_reused(self, client: TestClient):
        first = client.get("/api/reports/category_performance")
        session_id = first.cookies.get(SESSION_COOKIE_NAME)
        second = client.get("/api/reports/payment_method_stats")

        assert SESSION_COOKIE_NAME not in second.cookies
        entries = client.get("/api/query-log/recent").json()
        assert {entry["session_id"] for entry in entries} == {session_id}

    def test_reading_the_log_is_not_logged(self, client: TestClient):
        client.get("/api/reports/platform_statistics")
        client.get("/api/query-log/recent")
        client.get("/api/query-log/stats/types")
        response = client.get("/api/query-log/recent")

        assert response.headers["X-Total-Count"] == "1"
        assert len(response.json()) == 1

    def test_failed_statement_is_not_logged(self, client: TestClient, sample_data):
        response = client.post("/api/categories/", json={"action": "create", "create": {"category_name": "Arts"}})
        assert response.status_code == 409
        assert client.get("/api/query-log/recent").json() == []


class TestQueryLogViews:
    """Test the statistics and search views"""

    def test_stats_by_type_and_page(self, client: TestClient, sample_data):
        client.get("/api/reports/top_donors")
        client.post("/api/categories/", json={"action": "create", "create": {"category_name": "Music"}})

        types = {row["query_type"]: row for row in client.get("/api/query-log/stats/types").json()}
        assert set(types) == {"SELECT", "INSERT"}
        assert types["INSERT"]["query_count"] == 1
        assert types["INSERT"]["total_rows_affected"] == 1

        pages = {row["page_name"]: row["query_count"] for row in client.get("/api/query-log/stats/pages").json()}
        assert pages == {"analytics": 1, "categories": 1}

    def test_search(self, client: TestClient, sample_data):
        client.post("/api/categories/", json={"action": "create", "create": {"category_name": "Music"}})
        client.get("/api/reports/platform_statistics")

        found = client.get("/api/query-log/search", params={"q": "insert into categories"}).json()
        assert len(found) == 1
        assert found[0]["caller_label"] == "categories"
        assert "Music" not in found[0]["query_text"]

    def test_search_requires_term(self, client: TestClient):
        assert client.get("/api/query-log/search", params={"q": ""}).status_code == 422
