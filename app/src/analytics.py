"""
Revenue and booking statistics for the back office.

Only paid bookings count as revenue. Bookings are bucketed by their creation
time in UTC.
"""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Tuple
from sqlalchemy.orm.session import Session

from app.src.constants import ANALYTICS_DAYS, ANALYTICS_MONTHS
from app.src.db import Booking, Destination
from app.src.enums import BookingStatus


def _utc(moment: datetime) -> datetime:
    # SQLite hands back naive timestamps, they are stored in UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _lastMonths(today: date, count: int) -> List[str]:
    months = []
    year, month = today.year, today.month
    for _ in range(count):
        months.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def summarize(
    bookings: Iterable[Tuple[str, float, int, datetime]],
    destinationNames: Dict[int, str],
    now: datetime,
) -> dict:
    """
    Aggregate booking rows into the analytics report.

    Args:
        bookings: `(status, amount, destination_id, created_on)` per booking.
        destinationNames: Destination names by id.
        now (datetime): Reference time for the monthly and daily windows.

    Returns:
        dict: The report, see `app.api.analytics.AnalyticsSchema`.
    """
    today = _utc(now).date()
    months = _lastMonths(today, ANALYTICS_MONTHS)
    days = [
        (today - timedelta(days=offset)).isoformat()
        for offset in reversed(range(ANALYTICS_DAYS))
    ]

    statusCount = Counter()
    destinationCount = Counter()
    destinationRevenue = defaultdict(float)
    monthlyRevenue = defaultdict(float)
    dailyCount = Counter()
    totalRevenue = 0.0

    for status, amount, destinationId, createdOn in bookings:
        createdOn = _utc(createdOn)
        statusCount[status] += 1
        destinationCount[destinationId] += 1
        dailyCount[createdOn.date().isoformat()] += 1
        if status == BookingStatus.PAID.value:
            amount = float(amount)
            totalRevenue += amount
            destinationRevenue[destinationId] += amount
            monthlyRevenue[createdOn.strftime("%Y-%m")] += amount

    totalBookings = sum(statusCount.values())
    return {
        "total_revenue": round(totalRevenue, 2),
        "total_bookings": totalBookings,
        "by_status": [
            {
                "status": status.value,
                "count": statusCount[status.value],
                "percentage": (
                    round(statusCount[status.value] * 100 / totalBookings, 2)
                    if totalBookings
                    else 0.0
                ),
            }
            for status in BookingStatus
        ],
        "by_destination": [
            {
                "destination_id": destinationId,
                "name": destinationNames.get(destinationId, str(destinationId)),
                "bookings": count,
                "revenue": round(destinationRevenue[destinationId], 2),
            }
            for destinationId, count in destinationCount.most_common()
        ],
        "monthly_revenue": [
            {"month": month, "revenue": round(monthlyRevenue[month], 2)}
            for month in months
        ],
        "daily_bookings": [{"date": day, "count": dailyCount[day]} for day in days],
    }


def report(session: Session) -> dict:
    bookings = session.query(
        Booking.status, Booking.amount, Booking.destination_id, Booking.created_on
    ).all()
    destinationNames = dict(session.query(Destination.id, Destination.name).all())
    return summarize(bookings, destinationNames, datetime.now(timezone.utc))


def summarizeCustomers(
    bookings: Iterable[Tuple[str, str, str, str, str, float, datetime]],
) -> List[dict]:
    """
    Group booking rows into one entry per customer.

    A customer is identified by the lower-cased email. Name, phone and
    passenger class come from the customer's most recent booking. Only paid
    bookings add to `total_spent`.

    Args:
        bookings: `(full_name, email, phone, passenger_class, status, amount,
            created_on)` per booking.

    Returns:
        List[dict]: Customers, the most recently active first.
    """
    customers = {}
    for fullName, email, phone, passengerClass, status, amount, createdOn in bookings:
        createdOn = _utc(createdOn)
        key = email.lower()
        customer = customers.get(key)
        if customer is None:
            customer = customers[key] = {
                "email": email,
                "full_name": fullName,
                "phone": phone,
                "passenger_class": passengerClass,
                "total_bookings": 0,
                "total_spent": 0.0,
                "last_booking": createdOn,
            }
        elif createdOn > customer["last_booking"]:
            customer.update(
                email=email,
                full_name=fullName,
                phone=phone,
                passenger_class=passengerClass,
                last_booking=createdOn,
            )

        customer["total_bookings"] += 1
        if status == BookingStatus.PAID.value:
            customer["total_spent"] += float(amount)

    for customer in customers.values():
        customer["total_spent"] = round(customer["total_spent"], 2)
    return sorted(
        customers.values(), key=lambda c: c["last_booking"], reverse=True
    )


def matchesCustomer(customer: dict, search: str) -> bool:
    # Phone numbers are compared as typed
    term = search.lower()
    return (
        term in customer["full_name"].lower()
        or term in customer["email"].lower()
        or search in customer["phone"]
    )


def customerReport(session: Session, search: str | None = None) -> List[dict]:
    bookings = (
        session.query(
            Booking.full_name,
            Booking.email,
            Booking.phone,
            Booking.passenger_class,
            Booking.status,
            Booking.amount,
            Booking.created_on,
        )
        .order_by(Booking.created_on.desc())
        .all()
    )
    customers = summarizeCustomers(bookings)
    if search:
        customers = [c for c in customers if matchesCustomer(c, search)]
    return customers
