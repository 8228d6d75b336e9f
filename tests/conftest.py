import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth import create_user_token, get_password_hash
from database import Base, get_db
from main import app
from models import CategoryModel, ProductModel, UserModel
from uploads import UploadStorage, get_storage

# 1x1 png
PNG_DATA_URL = (
    "data:image/png;base64,"
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
JPEG_DATA_URL = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2Q=="


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return UploadStorage(tmp_path / "uploads")


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_user(db, email, role="user", password="secret123"):
    user = UserModel(
        ad="Test",
        soyad="Kullanıcı",
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_category(db, name, parent=None, **kwargs):
    category = CategoryModel(name=name, parent_id=parent.id if parent else None, **kwargs)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def make_product(db, name, category, **kwargs):
    product = ProductModel(name=name, description=f"{name} açıklaması", category_id=category.id, **kwargs)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def admin(db):
    return make_user(db, "admin@okulix.com", role="admin")


@pytest.fixture
def user(db):
    return make_user(db, "ayse@example.com")


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_user_token(admin)}"}


@pytest.fixture
def user_headers(user):
    return {"Authorization": f"Bearer {create_user_token(user)}"}


@pytest.fixture
def category(db):
    return make_category(db, "Electronics")


@pytest.fixture
def product(db, category):
    return make_product(db, "Widget", category)
