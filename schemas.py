"""
İstek ve yanıt şemaları.

JSON alan adları camelCase'dir (parentId, likesFake, galleryName);
Python tarafında snake_case isimlerle de doldurulabilir.
"""
from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from uploads import check_path_segment


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class IdRequest(CamelModel):
    id: int


# --- Kullanıcı ---
class RegisterRequest(CamelModel):
    ad: str = Field(..., min_length=1, max_length=50)
    soyad: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class ChangePasswordRequest(CamelModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class ChangeEmailRequest(CamelModel):
    new_email: EmailStr
    password: str


class AdminUserCreate(RegisterRequest):
    role: Literal["user", "admin"] = "user"
    is_active: bool = True


class AdminUserUpdate(CamelModel):
    id: int
    ad: Optional[str] = Field(None, max_length=50)
    soyad: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6)
    role: Optional[Literal["user", "admin"]] = None
    is_active: Optional[bool] = None


class UserResponse(CamelModel):
    id: int
    ad: str
    soyad: str
    email: str
    role: str
    is_active: bool
    visits: int
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class UserSummary(CamelModel):
    id: int
    ad: str
    soyad: str
    email: str


# --- Kategori ---
class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    image: str
    parent_id: Optional[int] = None


class CategoryUpdate(CamelModel):
    id: int
    name: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = Field(None, max_length=500)
    image: Optional[str] = None
    parent_id: Optional[int] = None


class CategoryResponse(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    image: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None


class CategoryTree(CategoryResponse):
    children: List["CategoryTree"] = []


# --- Ürün ---
class GalleryResponse(CamelModel):
    name: str
    description: Optional[str] = None
    images: List[str]
    order: int


class ProductResponse(CamelModel):
    id: int
    name: str
    description: str
    category: int
    visitor: int
    visitor_fake: int
    likes: int
    likes_fake: int
    favorites: int
    favorites_fake: int
    downloads: int
    downloads_fake: int
    is_active: bool
    banner: str
    gallery: List[GalleryResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category_model: Optional[CategoryResponse] = None

    @classmethod
    def from_model(cls, product, with_category: bool = False):
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            category=product.category_id,
            visitor=product.visitor,
            visitor_fake=product.visitor_fake,
            likes=product.likes,
            likes_fake=product.likes_fake,
            favorites=product.favorites,
            favorites_fake=product.favorites_fake,
            downloads=product.downloads,
            downloads_fake=product.downloads_fake,
            is_active=product.is_active,
            banner=product.banner or "",
            gallery=[GalleryResponse.model_validate(g) for g in product.gallery],
            created_at=product.created_at,
            updated_at=product.updated_at,
            category_model=(
                CategoryResponse.model_validate(product.category)
                if with_category and product.category is not None
                else None
            ),
        )


class ProductSummary(CamelModel):
    id: int
    name: str
    description: str


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: int
    visitor: int = Field(0, ge=0)
    visitor_fake: int = Field(0, ge=0)
    likes: int = Field(0, ge=0)
    likes_fake: int = Field(0, ge=0)
    favorites: int = Field(0, ge=0)
    favorites_fake: int = Field(0, ge=0)
    downloads: int = Field(0, ge=0)
    downloads_fake: int = Field(0, ge=0)
    is_active: bool = True

    check_name = field_validator("name")(check_path_segment)


class ProductUpdate(CamelModel):
    id: int
    name: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[int] = None
    visitor: Optional[int] = Field(None, ge=0)
    visitor_fake: Optional[int] = Field(None, ge=0)
    likes: Optional[int] = Field(None, ge=0)
    likes_fake: Optional[int] = Field(None, ge=0)
    favorites: Optional[int] = Field(None, ge=0)
    favorites_fake: Optional[int] = Field(None, ge=0)
    downloads: Optional[int] = Field(None, ge=0)
    downloads_fake: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value):
        # boş isim ad değişikliği yok demektir
        return check_path_segment(value) if value else value


class ProductListRequest(CamelModel):
    category_name: Optional[str] = None


class ProductDetailRequest(CamelModel):
    name: str


class BannerRequest(CamelModel):
    id: int
    banner: str


class GalleryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    images: List[str] = Field(..., min_length=1)
    order: int = 0

    check_name = field_validator("name")(check_path_segment)


class GalleryUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    order: int = 0

    check_name = field_validator("name")(check_path_segment)


class GalleryPhotos(CamelModel):
    images: List[str] = Field(..., min_length=1)


class AddGalleryRequest(CamelModel):
    id: int
    gallery: GalleryCreate


class UpdateGalleryRequest(CamelModel):
    id: int
    gallery_name: str
    gallery: GalleryUpdate


class GalleryRequest(CamelModel):
    id: int
    gallery_name: str


class GalleryPhotosRequest(CamelModel):
    id: int
    gallery_name: str
    gallery: GalleryPhotos


class ProductActionRequest(CamelModel):
    product_id: int


# --- Ziyaretçi ---
class VisitRequest(CamelModel):
    page_name: str = Field(..., min_length=1, max_length=100)


class VisitResponse(CamelModel):
    date: date
    page_name: str
    visitors: int


class VisitorRangeRequest(CamelModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    page_name: Optional[str] = None


# --- Rapor ---
class ReportCreate(CamelModel):
    product_id: Optional[int] = None
    message: str = Field(..., min_length=10, max_length=1000)
    email: EmailStr


class ReportListRequest(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    status: Optional[Literal["read", "unread"]] = None
    product_id: Optional[int] = None
    user_id: Optional[int] = None


class ReportResponse(CamelModel):
    id: int
    product_id: Optional[int] = None
    user_id: Optional[int] = None
    message: str
    email: str
    readed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    product: Optional[ProductSummary] = None
    user: Optional[UserSummary] = None


class UserDetailRequest(CamelModel):
    user_id: int
