"""
Ürün ve galeri işlemleri.

Dosyalar upload klasöründe product/<ürün adı>/<galeri adı>/ altında durur;
banner product/<ürün adı>/ altındadır. Ürün ya da galeri adı değiştiğinde
klasör adı ve kayıttaki yollar birlikte güncellenir. Klasör işlemleri ile
kayıt güncellemesi ayrı adımlardır, hata durumunda geri alma yapılmaz.
"""
import io
import logging
import zipfile
from typing import List, Optional

from fastapi import status
from sqlalchemy import func
from sqlalchemy.orm import Session

from category_tree import get_all_descendant_ids
from errors import AppError
from models import (
    CategoryModel,
    DownloadModel,
    FavoriteModel,
    GalleryModel,
    LikeModel,
    ProductModel,
    ReportModel,
)
from schemas import GalleryCreate, GalleryUpdate, ProductCreate, ProductUpdate
from uploads import UploadStorage, product_path, replace_segment

logger = logging.getLogger(__name__)

ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)

COUNTER_FIELDS = (
    "visitor",
    "visitor_fake",
    "likes",
    "likes_fake",
    "favorites",
    "favorites_fake",
    "downloads",
    "downloads_fake",
    "is_active",
)


# --- Yardımcılar ---
def get_product_or_404(db: Session, product_id: int, active_only: bool = False) -> ProductModel:
    query = db.query(ProductModel).filter(ProductModel.id == product_id)
    if active_only:
        query = query.filter(ProductModel.is_active == True)  # noqa: E712
    product = query.first()
    if not product:
        raise AppError("Ürün bulunamadı.", status.HTTP_404_NOT_FOUND)
    return product


def find_gallery(product: ProductModel, gallery_name: str) -> Optional[GalleryModel]:
    wanted = gallery_name.strip().lower()
    for gallery in product.gallery:
        if gallery.name.lower() == wanted:
            return gallery
    return None


def get_gallery_or_404(product: ProductModel, gallery_name: str) -> GalleryModel:
    gallery = find_gallery(product, gallery_name)
    if gallery is None:
        raise AppError(f'Bu isimde ("{gallery_name}") bir galeri bulunamadı.', status.HTTP_404_NOT_FOUND)
    return gallery


def _ensure_gallery_name_free(product: ProductModel, name: str):
    if find_gallery(product, name) is not None:
        raise AppError(
            f'Bu isimde ("{name}") bir galeri zaten mevcut. Lütfen farklı bir isim seçin.',
            status.HTTP_409_CONFLICT,
        )


def _active_name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(ProductModel).filter(
        func.lower(ProductModel.name) == name.strip().lower(),
        ProductModel.is_active == True,  # noqa: E712
    )
    if exclude_id is not None:
        query = query.filter(ProductModel.id != exclude_id)
    return query.first() is not None


def _check_category(db: Session, category_id: int):
    category = db.query(CategoryModel).filter(CategoryModel.id == category_id).first()
    if not category or not category.is_active:
        raise AppError("Kategori bulunamadı. Lütfen geçerli bir kategori sağlayın.", status.HTTP_400_BAD_REQUEST)


def _upload_gallery_images(storage: UploadStorage, product: ProductModel, gallery_name: str, images: List[str]) -> List[str]:
    uploaded = storage.upload_files(product_path(product.name, gallery_name), "gallery", images)
    if not uploaded.ok:
        raise AppError(
            f'Galeri "{gallery_name}" resimleri yüklenirken bir hata oluştu: {uploaded.error_text()}',
            status.HTTP_400_BAD_REQUEST,
        )
    return uploaded.paths


# --- Ürün ---
def list_products(db: Session, category_name: Optional[str] = None) -> List[ProductModel]:
    query = db.query(ProductModel).filter(ProductModel.is_active == True)  # noqa: E712

    if category_name:
        category = db.query(CategoryModel).filter(
            func.lower(CategoryModel.name) == category_name.strip().lower(),
            CategoryModel.is_active == True,  # noqa: E712
        ).first()
        if not category:
            raise AppError("Kategori bulunamadı. Lütfen geçerli bir kategori sağlayın.", status.HTTP_400_BAD_REQUEST)
        # alt kategorilerdeki ürünler de listelenir
        query = query.filter(ProductModel.category_id.in_(get_all_descendant_ids(db, category.id)))

    products = query.order_by(ProductModel.id).all()
    if not products:
        raise AppError("Ürün bulunamadı.", status.HTTP_404_NOT_FOUND)
    return products


def get_product_by_name(db: Session, name: str) -> ProductModel:
    product = db.query(ProductModel).filter(func.lower(ProductModel.name) == name.strip().lower()).first()
    if not product:
        raise AppError("Ürün bulunamadı.", status.HTTP_404_NOT_FOUND)
    return product


def create_product(db: Session, data: ProductCreate) -> ProductModel:
    if _active_name_taken(db, data.name):
        raise AppError("Bu isimde zaten bir ürün mevcut. Lütfen farklı bir isim seçin.", status.HTTP_400_BAD_REQUEST)
    _check_category(db, data.category)

    product = ProductModel(
        name=data.name.strip(),
        description=data.description,
        category_id=data.category,
        **{field: getattr(data, field) for field in COUNTER_FIELDS},
    )
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


def set_banner(db: Session, storage: UploadStorage, product_id: int, banner: str) -> ProductModel:
    product = get_product_or_404(db, product_id, active_only=True)

    uploaded = storage.upload_files(product_path(product.name), "banner", [banner])
    if not uploaded.ok:
        raise AppError("Banner resmi yüklenirken bir hata oluştu.", status.HTTP_400_BAD_REQUEST)

    if product.banner:
        storage.delete_image(product.banner)
    product.banner = uploaded.paths[0]
    db.commit()
    db.refresh(product)
    return product


def rename_product(storage: UploadStorage, product: ProductModel, new_name: str):
    """Ürün klasörünü ve kayıttaki tüm yolları yeni isme taşı (kaydetmez)"""
    if not storage.change_directory_name(product_path(product.name), product_path(new_name)):
        logger.warning("Ürün klasörü taşınamadı: %s -> %s", product.name, new_name)

    for gallery in product.gallery:
        gallery.images = [replace_segment(path, -3, new_name) for path in gallery.images]
    if product.banner:
        product.banner = replace_segment(product.banner, -2, new_name)
    product.name = new_name


def update_product(db: Session, storage: UploadStorage, data: ProductUpdate) -> ProductModel:
    product = db.query(ProductModel).filter(ProductModel.id == data.id).first()
    if not product or not product.is_active:
        raise AppError("Ürün bulunamadı.", status.HTTP_404_NOT_FOUND)

    if data.category is not None:
        _check_category(db, data.category)

    new_name = data.name.strip() if data.name else None
    if new_name and new_name != product.name:
        if _active_name_taken(db, new_name, exclude_id=product.id):
            raise AppError("Bu isimde zaten bir ürün mevcut. Lütfen farklı bir isim seçin.", status.HTTP_400_BAD_REQUEST)
        rename_product(storage, product, new_name)

    if data.description:
        product.description = data.description
    if data.category is not None:
        product.category_id = data.category
    for field in COUNTER_FIELDS:
        value = getattr(data, field)
        if value is not None:
            setattr(product, field, value)

    db.commit()
    db.refresh(product)
    return product


def delete_product(db: Session, storage: UploadStorage, product_id: int):
    product = get_product_or_404(db, product_id)

    if not storage.delete_directory(product_path(product.name)):
        logger.warning("Ürün klasörü silinemedi: %s", product.name)

    db.query(LikeModel).filter(LikeModel.product_id == product.id).delete(synchronize_session=False)
    db.query(FavoriteModel).filter(FavoriteModel.product_id == product.id).delete(synchronize_session=False)
    db.query(DownloadModel).filter(DownloadModel.product_id == product.id).delete(synchronize_session=False)
    db.query(ReportModel).filter(ReportModel.product_id == product.id).update(
        {"product_id": None}, synchronize_session=False
    )
    db.delete(product)
    db.commit()


# --- Galeri ---
def add_gallery(db: Session, storage: UploadStorage, product_id: int, data: GalleryCreate) -> ProductModel:
    product = get_product_or_404(db, product_id, active_only=True)
    name = data.name.strip()
    _ensure_gallery_name_free(product, name)

    paths = _upload_gallery_images(storage, product, name, data.images)

    product.gallery.append(
        GalleryModel(name=name, description=data.description, images=paths, order=data.order)
    )
    db.commit()
    db.refresh(product)
    return product


def rename_gallery(db: Session, storage: UploadStorage, product_id: int, gallery_name: str, data: GalleryUpdate) -> ProductModel:
    product = get_product_or_404(db, product_id)
    gallery = get_gallery_or_404(product, gallery_name)
    new_name = data.name.strip()

    # aynı isim de çakışma sayılır
    _ensure_gallery_name_free(product, new_name)

    if not storage.change_directory_name(product_path(product.name, gallery.name), product_path(product.name, new_name)):
        raise AppError("Galeri adı değiştirilirken bir hata oluştu.", status.HTTP_500_INTERNAL_SERVER_ERROR)

    gallery.images = [replace_segment(path, -2, new_name) for path in gallery.images]
    gallery.name = new_name
    gallery.description = data.description
    gallery.order = data.order

    db.commit()
    db.refresh(product)
    return product


def delete_gallery(db: Session, storage: UploadStorage, product_id: int, gallery_name: str) -> ProductModel:
    product = get_product_or_404(db, product_id)
    gallery = get_gallery_or_404(product, gallery_name)

    if not storage.delete_directory(product_path(product.name, gallery.name)):
        logger.warning("Galeri klasörü silinemedi: %s/%s", product.name, gallery.name)

    product.gallery.remove(gallery)
    db.commit()
    db.refresh(product)
    return product


def add_photos(db: Session, storage: UploadStorage, product_id: int, gallery_name: str, images: List[str]) -> ProductModel:
    product = get_product_or_404(db, product_id)
    gallery = get_gallery_or_404(product, gallery_name)

    paths = _upload_gallery_images(storage, product, gallery.name, images)
    gallery.images = list(gallery.images) + paths

    db.commit()
    db.refresh(product)
    return product


def remove_photos(db: Session, storage: UploadStorage, product_id: int, gallery_name: str, images: List[str]) -> ProductModel:
    product = get_product_or_404(db, product_id)
    gallery = get_gallery_or_404(product, gallery_name)

    to_remove = set(images)
    remaining = [path for path in gallery.images if path not in to_remove]
    if len(remaining) < 1:
        raise AppError("Galeride en az bir resim kalmalıdır.", status.HTTP_400_BAD_REQUEST)

    for path in gallery.images:
        if path in to_remove and not storage.delete_image(path):
            logger.warning("Galeri resmi silinemedi: %s", path)

    gallery.images = remaining
    db.commit()
    db.refresh(product)
    return product


def build_zip(storage: UploadStorage, relative_dir: str) -> io.BytesIO:
    """Klasör içeriğinden sıralı, sabit zaman damgalı bir zip oluştur"""
    root = storage.resolve(relative_dir)
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for path in storage.list_files(relative_dir):
            info = zipfile.ZipInfo(path.relative_to(root).as_posix(), date_time=ZIP_TIMESTAMP)
            info.compress_type = zipfile.ZIP_DEFLATED
            info.external_attr = 0o644 << 16
            archive.writestr(info, path.read_bytes(), compresslevel=9)
    buffer.seek(0)
    return buffer


def download_gallery(db: Session, storage: UploadStorage, product_id: int, gallery_name: str, user=None):
    """Galeriyi zip olarak hazırla, indirme sayısını artır. (dosya adı, buffer) döndürür."""
    product = get_product_or_404(db, product_id)
    gallery = get_gallery_or_404(product, gallery_name)

    relative_dir = product_path(product.name, gallery.name)
    if not storage.directory_exists(relative_dir):
        raise AppError("Galeri dosyaları bulunamadı.", status.HTTP_404_NOT_FOUND)

    buffer = build_zip(storage, relative_dir)

    # indirme kaydı sadece kayıtlı kullanıcılar için
    if user is not None:
        db.add(DownloadModel(product_id=product.id, user_id=user.id))
    db.query(ProductModel).filter(ProductModel.id == product.id).update(
        {"downloads": ProductModel.downloads + 1}, synchronize_session=False
    )
    db.commit()

    return f"{gallery.name}.zip", buffer
