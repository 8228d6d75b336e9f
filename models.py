from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    ad = Column(String(50), nullable=False)
    soyad = Column(String(50), nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    visits = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    role = Column(String, default="user", nullable=False)  # user, admin
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class CategoryModel(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    # Benzersizlik sadece veritabanı index'i ile sağlanır
    name = Column(String(50), unique=True, nullable=False)
    description = Column(String(500), nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=True, index=True)
    image = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Gerçek sayaçlar ve vitrin (fake) sayaçları ayrı tutulur
    visitor = Column(Integer, default=0, nullable=False)
    visitor_fake = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    likes_fake = Column(Integer, default=0, nullable=False)
    favorites = Column(Integer, default=0, nullable=False)
    favorites_fake = Column(Integer, default=0, nullable=False)
    downloads = Column(Integer, default=0, nullable=False)
    downloads_fake = Column(Integer, default=0, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    banner = Column(String, default="", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # İlişkiler
    category = relationship("CategoryModel")
    gallery = relationship(
        "GalleryModel",
        back_populates="product",
        order_by="GalleryModel.id",
        cascade="all, delete-orphan",
    )


class GalleryModel(Base):
    __tablename__ = "galleries"
    __table_args__ = (UniqueConstraint("product_id", "name", name="uq_gallery_product_name"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    # Liste her değişiklikte yeniden atanmalı, yerinde değişiklik izlenmez
    images = Column(JSON, nullable=False, default=list)
    order = Column(Integer, default=0, nullable=False)

    product = relationship("ProductModel", back_populates="gallery")


class LikeModel(Base):
    __tablename__ = "likes"
    __table_args__ = (
        # Aynı kullanıcı aynı ürünü bir kez beğenebilir (anonim kayıtlar serbest)
        Index(
            "uq_likes_product_user",
            "product_id",
            "user_id",
            unique=True,
            sqlite_where=text("user_id IS NOT NULL"),
            postgresql_where=text("user_id IS NOT NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class FavoriteModel(Base):
    __tablename__ = "favorites"
    __table_args__ = (
        Index(
            "uq_favorites_product_user",
            "product_id",
            "user_id",
            unique=True,
            sqlite_where=text("user_id IS NOT NULL"),
            postgresql_where=text("user_id IS NOT NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class DownloadModel(Base):
    __tablename__ = "downloads"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class VisitorModel(Base):
    __tablename__ = "visitors"
    # Aynı gün aynı sayfa için sadece bir kayıt
    __table_args__ = (UniqueConstraint("date", "page_name", name="uq_visitors_date_page"),)

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)
    page_name = Column(String(100), nullable=False, index=True)
    visitors = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class ReportModel(Base):
    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    message = Column(Text, nullable=False)
    email = Column(String, nullable=False, index=True)
    readed_at = Column(DateTime(timezone=True), nullable=True)  # okunma zamanı, bir kez atanır
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # İlişkiler
    product = relationship("ProductModel")
    user = relationship("UserModel")
