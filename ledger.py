"""
Beğeni / favori gibi aç-kapa işlemleri.

Her işlem iki ayrı yazmadan oluşur: (ürün, kullanıcı) kaydının eklenmesi
veya silinmesi, ardından üründeki sayacın bir artırılıp azaltılması. İkisi
tek bir transaction içinde değildir; sayaç eşzamanlı isteklerde kayabilir,
gerçek değer için `count_rows` kullanılır.
"""
import logging

from fastapi import status
from sqlalchemy import case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import AppError
from models import FavoriteModel, LikeModel, ProductModel

logger = logging.getLogger(__name__)

# ledger modeli -> (gerçek sayaç, fake sayaç)
COUNTERS = {
    LikeModel: ("likes", "likes_fake"),
    FavoriteModel: ("favorites", "favorites_fake"),
}


def count_rows(db: Session, ledger_model, product_id: int) -> int:
    return db.query(ledger_model).filter(ledger_model.product_id == product_id).count()


def _adjust_counter(db: Session, product_id: int, counter: str, delta: int):
    column = getattr(ProductModel, counter)
    if delta < 0:
        # sayaç sıfırın altına inmez
        value = case((column > 0, column - 1), else_=0)
    else:
        value = column + delta
    db.query(ProductModel).filter(ProductModel.id == product_id).update(
        {counter: value}, synchronize_session=False
    )
    db.commit()


def toggle(db: Session, ledger_model, product_id: int, user, login_message: str = None) -> int:
    """Kaydı ekle ya da kaldır, yeni toplamı (gerçek + fake) döndür"""
    if user is None:
        raise AppError(login_message or "Bu işlem için giriş yapmalısınız.", status.HTTP_401_UNAUTHORIZED)

    counter, fake_counter = COUNTERS[ledger_model]

    product = db.query(ProductModel).filter(ProductModel.id == product_id).first()
    if not product:
        raise AppError("Ürün bulunamadı. Lütfen geçerli bir ürün ID'si sağlayın.", status.HTTP_404_NOT_FOUND)

    existing = db.query(ledger_model).filter(
        ledger_model.product_id == product_id,
        ledger_model.user_id == user.id,
    )
    if existing.first():
        existing.delete(synchronize_session=False)
        db.commit()
        _adjust_counter(db, product_id, counter, -1)
    else:
        db.add(ledger_model(product_id=product_id, user_id=user.id))
        try:
            db.commit()
        except IntegrityError:
            # eşzamanlı bir istek kaydı zaten ekledi
            db.rollback()
            logger.info("%s kaydı zaten mevcut: product=%s user=%s", ledger_model.__tablename__, product_id, user.id)
        else:
            _adjust_counter(db, product_id, counter, 1)

    db.refresh(product)
    return getattr(product, counter) + getattr(product, fake_counter)


def remove_user_rows(db: Session, user_id: int):
    """Kullanıcının tüm beğeni/favori kayıtlarını sil, ürün sayaçlarını düşür"""
    for ledger_model, (counter, _) in COUNTERS.items():
        rows = db.query(ledger_model).filter(ledger_model.user_id == user_id)
        product_ids = [row.product_id for row in rows]
        rows.delete(synchronize_session=False)
        db.commit()
        for product_id in product_ids:
            _adjust_counter(db, product_id, counter, -1)
