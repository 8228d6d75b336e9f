from datetime import date

import visitor_counter
from models import VisitorModel


def test_first_visit_creates_then_increments(db):
    day = date(2024, 5, 1)

    visitor, created = visitor_counter.record_visit(db, "home", today=day)
    assert created is True
    assert visitor.visitors == 1

    visitor, created = visitor_counter.record_visit(db, "home", today=day)
    assert created is False
    assert visitor.visitors == 2
    assert db.query(VisitorModel).count() == 1


def test_many_visits_keep_a_single_row(db):
    day = date(2024, 5, 1)
    for _ in range(7):
        visitor_counter.record_visit(db, "home", today=day)

    rows = db.query(VisitorModel).all()
    assert len(rows) == 1
    assert rows[0].visitors == 7


def test_pages_and_days_are_counted_separately(db):
    visitor_counter.record_visit(db, "home", today=date(2024, 5, 1))
    visitor_counter.record_visit(db, "about", today=date(2024, 5, 1))
    visitor_counter.record_visit(db, "home", today=date(2024, 5, 2))

    assert db.query(VisitorModel).count() == 3


def test_unique_violation_retries_as_increment(db, monkeypatch):
    day = date(2024, 5, 1)
    # başka bir istek kaydı az önce oluşturmuş
    db.add(VisitorModel(date=day, page_name="home", visitors=1))
    db.commit()

    original = visitor_counter._find_visit
    calls = []

    def stale_first_lookup(session, lookup_day, page_name):
        calls.append(page_name)
        if len(calls) == 1:
            return None
        return original(session, lookup_day, page_name)

    monkeypatch.setattr(visitor_counter, "_find_visit", stale_first_lookup)

    visitor, created = visitor_counter.record_visit(db, "home", today=day)

    assert created is False
    assert visitor.visitors == 2
    assert len(calls) == 2
    assert db.query(VisitorModel).count() == 1


def seed(db):
    rows = [
        (date(2024, 5, 1), "home", 5),
        (date(2024, 5, 1), "about", 1),
        (date(2024, 5, 2), "home", 3),
        (date(2024, 5, 3), "contact", 2),
    ]
    for day, page, count in rows:
        db.add(VisitorModel(date=day, page_name=page, visitors=count))
    db.commit()


def test_daily_totals_newest_first(db):
    seed(db)

    data = visitor_counter.daily_totals(db)

    assert data["totalDays"] == 3
    assert [d["date"] for d in data["dailyStats"]] == [date(2024, 5, 3), date(2024, 5, 2), date(2024, 5, 1)]
    first_day = data["dailyStats"][-1]
    assert first_day["totalVisitors"] == 6
    assert first_day["pageCount"] == 2


def test_daily_totals_date_range(db):
    seed(db)

    data = visitor_counter.daily_totals(db, start_date=date(2024, 5, 2), end_date=date(2024, 5, 2))

    assert data["totalDays"] == 1
    assert data["dailyStats"][0]["totalVisitors"] == 3


def test_per_page_totals_sorted_by_total(db):
    seed(db)

    data = visitor_counter.per_page_totals(db)

    assert [p["pageName"] for p in data["pageStats"]] == ["home", "contact", "about"]
    home = data["pageStats"][0]
    assert home["totalVisitors"] == 8
    assert home["visitDays"] == 2
    assert home["averageVisitorsPerDay"] == 4.0
    assert [d["date"] for d in home["dailyBreakdown"]] == [date(2024, 5, 2), date(2024, 5, 1)]


def test_per_page_totals_page_filter(db):
    seed(db)

    data = visitor_counter.per_page_totals(db, page_name="about")

    assert data["totalPages"] == 1
    assert data["pageStats"][0]["totalVisitors"] == 1


def test_overall_stats(db):
    seed(db)

    stats = visitor_counter.overall_stats(db)

    assert stats["totalVisitors"] == 11
    assert stats["totalUniquePages"] == 3
    assert stats["totalActiveDays"] == 3
    assert stats["averageVisitorsPerDay"] == 3.67
    assert stats["mostVisitedPage"] == {"pageName": "home", "totalVisitors": 8}


def test_overall_stats_empty(db):
    stats = visitor_counter.overall_stats(db)

    assert stats["totalVisitors"] == 0
    assert stats["mostVisitedPage"] is None


def test_overall_stats_tie_breaks_by_page_name(db):
    db.add(VisitorModel(date=date(2024, 5, 1), page_name="zeta", visitors=4))
    db.add(VisitorModel(date=date(2024, 5, 1), page_name="alpha", visitors=4))
    db.commit()

    stats = visitor_counter.overall_stats(db)

    assert stats["mostVisitedPage"] == {"pageName": "alpha", "totalVisitors": 4}
    assert stats["averageVisitorsPerDay"] == 8.0
