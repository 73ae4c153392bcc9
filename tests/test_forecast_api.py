"""
Tests for the forecast API endpoints.
"""

from unittest.mock import patch


def _payload(make_income, make_bill, **extra):
    payload = {
        "as_of": "2026-10-19",
        "current_balance": 1000,
        "incomes": [make_income(amount=500)],
        "bills": [make_bill(amount=200), make_bill(id="late", when="2026-10-10")],
        "horizon_days": 30,
    }
    payload.update(extra)
    return payload


class TestForecastEndpoint:
    """Test POST /api/forecast."""

    def test_forecast(self, client, make_income, make_bill):
        """Test a successful forecast response."""
        response = client.post("/api/forecast", json=_payload(make_income, make_bill))

        assert response.status_code == 200
        data = response.get_json()

        items = data["forecast"]["items"]
        assert data["forecast"]["as_of"] == "2026-10-19"
        assert items[0]["kind"] == "balance"
        assert items[0]["date"] == "2026-10-19"
        assert [item["kind"] for item in items] == ["balance", "income", "bill", "marker"]
        assert data["summary"]["projected_available"] == 1300
        assert data["monthly_breakdown"][0]["month"] == "Oct 2026"
        assert len(data["monthly_breakdown"]) == 12
        assert data["chart"]
        assert [bill["id"] for bill in data["overdue_bills"]] == ["late"]
        assert data["upcoming_bills"] == []

    def test_diagnostics_are_reported(self, client, make_income, make_bill):
        """Test that dropped records appear in the diagnostics."""
        payload = _payload(
            make_income, make_bill, incomes=[make_income(amount="lots")]
        )
        response = client.post("/api/forecast", json=payload)

        assert response.status_code == 200
        codes = [d["code"] for d in response.get_json()["forecast"]["diagnostics"]]
        assert "invalid_record" in codes

    def test_non_json_body(self, client):
        """Test that a non-JSON body is rejected."""
        response = client.post(
            "/api/forecast", data="not json", content_type="text/plain"
        )

        assert response.status_code == 400

    def test_invalid_as_of(self, client, make_income, make_bill):
        """Test that a malformed reference date is rejected."""
        response = client.post(
            "/api/forecast", json=_payload(make_income, make_bill, as_of="someday")
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid request"

    def test_body_must_be_object(self, client):
        """Test that a JSON array body is rejected."""
        response = client.post("/api/forecast", json=[1, 2, 3])

        assert response.status_code == 400

    def test_unexpected_error(self, client, make_income, make_bill):
        """Test that unexpected failures return 500."""
        with patch(
            "cashcast.services.forecast_service.summarize_forecast",
            side_effect=RuntimeError("boom"),
        ):
            response = client.post("/api/forecast", json=_payload(make_income, make_bill))

        assert response.status_code == 500
        assert response.get_json() == {"error": "Internal server error"}


class TestScenarioEndpoint:
    """Test POST /api/forecast/scenario."""

    def test_scenario(self, client, make_income, make_bill):
        """Test a successful scenario comparison."""
        payload = _payload(
            make_income,
            make_bill,
            scenario={"name": "Raise", "income_adjustment_pct": 10},
        )
        response = client.post("/api/forecast/scenario", json=payload)

        assert response.status_code == 200
        data = response.get_json()
        assert data["name"] == "Raise"
        assert data["baseline_summary"]["projected_income"] == 500
        assert round(data["scenario_summary"]["projected_income"], 2) == 550
        assert round(data["ending_balance_delta"], 2) == 50
        assert round(data["monthly_breakdown"][0]["scenario_income"], 2) == 550

    def test_invalid_scenario(self, client, make_income, make_bill):
        """Test that an out-of-range scenario is rejected."""
        payload = _payload(
            make_income, make_bill, scenario={"income_adjustment_pct": -500}
        )
        response = client.post("/api/forecast/scenario", json=payload)

        assert response.status_code == 400

    def test_scenario_must_be_object(self, client, make_income, make_bill):
        """Test that a non-object scenario is rejected."""
        payload = _payload(make_income, make_bill, scenario="raise")
        response = client.post("/api/forecast/scenario", json=payload)

        assert response.status_code == 400
