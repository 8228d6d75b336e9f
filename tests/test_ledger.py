import pytest

import ledger
from errors import AppError
from models import FavoriteModel, LikeModel
from tests.conftest import make_product, make_user


def test_like_toggle_blends_fake_counter(db, category, user):
    widget = make_product(db, "Widget", category, likes=0, likes_fake=10)

    assert ledger.toggle(db, LikeModel, widget.id, user) == 11
    assert ledger.count_rows(db, LikeModel, widget.id) == 1
    db.refresh(widget)
    assert widget.likes == 1

    assert ledger.toggle(db, LikeModel, widget.id, user) == 10
    assert ledger.count_rows(db, LikeModel, widget.id) == 0
    db.refresh(widget)
    assert widget.likes == 0
    assert widget.likes_fake == 10


def test_each_user_has_own_ledger_row(db, product, user):
    other = make_user(db, "mehmet@example.com")

    ledger.toggle(db, LikeModel, product.id, user)
    total = ledger.toggle(db, LikeModel, product.id, other)

    assert total == 2
    assert ledger.count_rows(db, LikeModel, product.id) == 2


def test_favorites_do_not_touch_likes(db, product, user):
    assert ledger.toggle(db, FavoriteModel, product.id, user) == 1

    db.refresh(product)
    assert product.favorites == 1
    assert product.likes == 0
    assert ledger.count_rows(db, LikeModel, product.id) == 0


def test_anonymous_toggle_is_rejected(db, product):
    with pytest.raises(AppError) as exc:
        ledger.toggle(db, LikeModel, product.id, None)
    assert exc.value.status_code == 401


def test_missing_product_is_404(db, user):
    with pytest.raises(AppError) as exc:
        ledger.toggle(db, FavoriteModel, 404, user)
    assert exc.value.status_code == 404


def test_counter_does_not_go_negative(db, product, user):
    # sayaç ile kayıtlar arasında kayma olmuş durum
    db.add(LikeModel(product_id=product.id, user_id=user.id))
    db.commit()

    assert ledger.toggle(db, LikeModel, product.id, user) == 0
    db.refresh(product)
    assert product.likes == 0


def test_remove_user_rows_drops_rows_and_counters(db, category, user):
    other = make_user(db, "mehmet@example.com")
    widget = make_product(db, "Widget", category, likes_fake=10)
    ledger.toggle(db, LikeModel, widget.id, user)
    ledger.toggle(db, LikeModel, widget.id, other)
    ledger.toggle(db, FavoriteModel, widget.id, user)

    ledger.remove_user_rows(db, user.id)

    db.refresh(widget)
    assert widget.likes == 1
    assert widget.favorites == 0
    assert ledger.count_rows(db, LikeModel, widget.id) == 1
    assert ledger.count_rows(db, FavoriteModel, widget.id) == 0
