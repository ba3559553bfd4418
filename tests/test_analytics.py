from datetime import datetime, timezone

from app.src import analytics

NOW = datetime(2026, 3, 10, 18, 30, tzinfo=timezone.utc)
NAMES = {1: "Kumasi", 2: "Accra"}


def test_summarize():
    rows = [
        ("paid", 80, 1, datetime(2026, 3, 9, 10, 0)),
        ("paid", 120, 2, datetime(2026, 1, 15, 8, 0, tzinfo=timezone.utc)),
        ("pending", 80, 1, datetime(2026, 3, 10, 7, 0)),
        ("cancelled", 120, 2, datetime(2025, 9, 1, 12, 0)),
    ]

    report = analytics.summarize(rows, NAMES, NOW)

    assert report["total_revenue"] == 200
    assert report["total_bookings"] == 4
    assert report["by_status"] == [
        {"status": "pending", "count": 1, "percentage": 25.0},
        {"status": "paid", "count": 2, "percentage": 50.0},
        {"status": "cancelled", "count": 1, "percentage": 25.0},
    ]
    assert report["by_destination"] == [
        {"destination_id": 1, "name": "Kumasi", "bookings": 2, "revenue": 80},
        {"destination_id": 2, "name": "Accra", "bookings": 2, "revenue": 120},
    ]
    assert report["monthly_revenue"] == [
        {"month": "2025-10", "revenue": 0},
        {"month": "2025-11", "revenue": 0},
        {"month": "2025-12", "revenue": 0},
        {"month": "2026-01", "revenue": 120},
        {"month": "2026-02", "revenue": 0},
        {"month": "2026-03", "revenue": 80},
    ]
    assert [d["date"] for d in report["daily_bookings"]][0] == "2026-03-04"
    assert [d["count"] for d in report["daily_bookings"]] == [0, 0, 0, 0, 0, 1, 1]


def test_summarize_without_bookings():
    report = analytics.summarize([], NAMES, NOW)

    assert report["total_revenue"] == 0
    assert {s["percentage"] for s in report["by_status"]} == {0.0}
    assert report["by_destination"] == []
    assert len(report["monthly_revenue"]) == 6
    assert len(report["daily_bookings"]) == 7


def test_analytics_endpoint(client, adminHeaders, passenger):
    paidId = client.post("/public/booking", data=passenger).json()["id"]
    client.post("/public/booking", data={**passenger, "seat_number": 2})
    client.patch(
        "/admin/booking", headers=adminHeaders, data={"id": paidId, "status": "paid"}
    )

    response = client.get("/admin/analytics", headers=adminHeaders)

    assert response.status_code == 200
    report = response.json()
    assert report["total_revenue"] == 80
    assert report["total_bookings"] == 2
    assert report["by_destination"][0]["name"] == "Kumasi"
    assert report["daily_bookings"][-1]["count"] == 2


def test_analytics_needs_a_token(client):
    response = client.get(
        "/admin/analytics", headers={"Authorization": "Bearer expired"}
    )

    assert response.status_code == 401
