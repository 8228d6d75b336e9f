"""
Günlük sayfa ziyaretçi sayacı ve istatistikleri.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import VisitorModel

logger = logging.getLogger(__name__)


def _find_visit(db: Session, day: date, page_name: str) -> Optional[VisitorModel]:
    return (
        db.query(VisitorModel)
        .filter(VisitorModel.date == day, VisitorModel.page_name == page_name)
        .first()
    )


def _increment(db: Session, visitor: VisitorModel) -> VisitorModel:
    visitor.visitors = VisitorModel.visitors + 1
    db.commit()
    db.refresh(visitor)
    return visitor


def record_visit(db: Session, page_name: str, today: Optional[date] = None):
    """
    Bugünün (date, page_name) kaydını bir artır, yoksa oluştur.

    Aynı gün aynı sayfaya gelen ilk iki istek aynı anda "kayıt yok" görebilir;
    ikinci insert unique constraint'e takılır ve bir kez artırma olarak
    tekrar denenir. (kayıt, yeni_mi) döndürür.
    """
    today = today or date.today()
    page_name = page_name.strip()

    existing = _find_visit(db, today, page_name)
    if existing:
        return _increment(db, existing), False

    visitor = VisitorModel(date=today, page_name=page_name, visitors=1)
    db.add(visitor)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Ziyaretçi kaydı eşzamanlı oluşturuldu, artırma olarak tekrar deneniyor: %s %s", today, page_name)
        existing = _find_visit(db, today, page_name)
        if existing is None:
            raise
        return _increment(db, existing), False

    db.refresh(visitor)
    return visitor, True


def _filtered(db: Session, start_date=None, end_date=None, page_name=None):
    query = db.query(VisitorModel)
    if start_date:
        query = query.filter(VisitorModel.date >= start_date)
    if end_date:
        query = query.filter(VisitorModel.date <= end_date)
    if page_name:
        query = query.filter(VisitorModel.page_name == page_name)
    return query.all()


def daily_totals(db: Session, start_date=None, end_date=None) -> dict:
    """Gün bazında toplam ziyaretçi (en yeni gün önce)"""
    days = defaultdict(list)
    for row in _filtered(db, start_date, end_date):
        days[row.date].append(row)

    daily_stats = []
    for day in sorted(days, reverse=True):
        rows = days[day]
        daily_stats.append({
            "date": day,
            "totalVisitors": sum(r.visitors for r in rows),
            "pageCount": len(rows),
            "pages": [{"pageName": r.page_name, "visitors": r.visitors} for r in rows],
        })

    return {"dailyStats": daily_stats, "totalDays": len(daily_stats)}


def per_page_totals(db: Session, start_date=None, end_date=None, page_name=None) -> dict:
    """Sayfa bazında toplamlar ve günlük döküm (en çok ziyaret edilen önce)"""
    pages = defaultdict(list)
    for row in _filtered(db, start_date, end_date, page_name):
        pages[row.page_name].append(row)

    page_stats = []
    for name, rows in pages.items():
        total = sum(r.visitors for r in rows)
        page_stats.append({
            "pageName": name,
            "totalVisitors": total,
            "visitDays": len(rows),
            "averageVisitorsPerDay": round(total / len(rows), 2),
            "dailyBreakdown": [
                {"date": r.date, "visitors": r.visitors, "createdAt": r.created_at}
                for r in sorted(rows, key=lambda r: r.date, reverse=True)
            ],
        })
    page_stats.sort(key=lambda p: (-p["totalVisitors"], p["pageName"]))

    return {"pageStats": page_stats, "totalPages": len(page_stats)}


def overall_stats(db: Session) -> dict:
    """Toplamlar veritabanında hesaplanır"""
    total, active_days, unique_pages = db.query(
        func.coalesce(func.sum(VisitorModel.visitors), 0),
        func.count(func.distinct(VisitorModel.date)),
        func.count(func.distinct(VisitorModel.page_name)),
    ).one()

    page_total = func.sum(VisitorModel.visitors)
    top = (
        db.query(VisitorModel.page_name, page_total.label("total"))
        .group_by(VisitorModel.page_name)
        .order_by(page_total.desc(), VisitorModel.page_name)
        .first()
    )

    return {
        "totalVisitors": int(total),
        "totalUniquePages": unique_pages,
        "totalActiveDays": active_days,
        "averageVisitorsPerDay": round(total / active_days, 2) if active_days else 0,
        "mostVisitedPage": {"pageName": top.page_name, "totalVisitors": int(top.total)} if top else None,
    }
