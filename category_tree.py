"""
Kategori ağacı işlemleri.

Kategoriler parent_id ile kendine referans veren düz bir tablodur. Ağaç,
istek başına tüm kategoriler bir kez okunup parent_id -> çocuklar index'i
kurularak oluşturulur; özyineleme veritabanına değil index'e gider.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from errors import AppError
from models import CategoryModel, ProductModel
from schemas import CategoryCreate, CategoryResponse, CategoryTree, CategoryUpdate
from uploads import UploadStorage

logger = logging.getLogger(__name__)


class CategoryCycleError(AppError):
    def __init__(self, category_id: int):
        super().__init__(
            f"Kategori ağacında döngü tespit edildi (id: {category_id}).",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
        self.category_id = category_id


def build_children_index(categories: Iterable[CategoryModel], active_only: bool = False) -> Dict[Optional[int], List[CategoryModel]]:
    index = defaultdict(list)
    for category in sorted(categories, key=lambda c: c.id):
        if active_only and not category.is_active:
            continue
        index[category.parent_id].append(category)
    return index


def _expand(category: CategoryModel, index, visited: Set[int]) -> CategoryTree:
    if category.id in visited:
        raise CategoryCycleError(category.id)
    visited.add(category.id)

    node = CategoryTree(**CategoryResponse.model_validate(category).model_dump())
    node.children = [_expand(child, index, visited) for child in index.get(category.id, [])]
    return node


def expand_categories(db: Session, roots: Iterable[CategoryModel]) -> List[CategoryTree]:
    """Verilen kategorileri tüm alt kategorileriyle birlikte iç içe yapıya çevir"""
    index = build_children_index(db.query(CategoryModel).all())
    visited = set()
    return [_expand(root, index, visited) for root in roots]


def list_tree(db: Session) -> List[CategoryTree]:
    """Kök kategoriler (parent_id boş) ve tüm alt ağaçları"""
    roots = (
        db.query(CategoryModel)
        .filter(CategoryModel.parent_id.is_(None))
        .order_by(CategoryModel.id)
        .all()
    )
    return expand_categories(db, roots)


def get_category_or_404(db: Session, category_id: int) -> CategoryModel:
    category = db.query(CategoryModel).filter(CategoryModel.id == category_id).first()
    if not category:
        raise AppError("Kategori bulunamadı.", status.HTTP_404_NOT_FOUND)
    return category


def get_subtree(db: Session, category_id: int) -> CategoryTree:
    category = get_category_or_404(db, category_id)
    return expand_categories(db, [category])[0]


def get_all_descendant_ids(db: Session, category_id: int) -> List[int]:
    """Kategori ve tüm aktif alt kategorilerinin id'leri (kendisi dahil)"""
    index = build_children_index(db.query(CategoryModel).all(), active_only=True)

    result = []
    visited = set()
    stack = [category_id]
    while stack:
        current = stack.pop()
        if current in visited:
            raise CategoryCycleError(current)
        visited.add(current)
        result.append(current)
        stack.extend(reversed([child.id for child in index.get(current, [])]))
    return result


def _check_parent(db: Session, category_id: Optional[int], parent_id: Optional[int]):
    if parent_id is None:
        return
    if category_id is not None and parent_id == category_id:
        raise AppError("Bir kategori kendi üst kategorisi olamaz.", status.HTTP_400_BAD_REQUEST)

    parent = db.query(CategoryModel).filter(CategoryModel.id == parent_id).first()
    if not parent:
        raise AppError("Üst kategori bulunamadı.", status.HTTP_400_BAD_REQUEST)

    if category_id is not None and parent_id in get_all_descendant_ids_unfiltered(db, category_id):
        raise AppError("Bir kategori kendi alt kategorisinin altına taşınamaz.", status.HTTP_400_BAD_REQUEST)


def get_all_descendant_ids_unfiltered(db: Session, category_id: int) -> Set[int]:
    index = build_children_index(db.query(CategoryModel).all())
    seen = set()
    stack = [category_id]
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        stack.extend(child.id for child in index.get(current, []))
    return seen


def _commit_name(db: Session):
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AppError("Bu kategori adı zaten kullanılıyor.", status.HTTP_400_BAD_REQUEST)


def _upload_category_image(storage: UploadStorage, name: str, image: str) -> str:
    uploaded = storage.upload_files("categories", name, [image])
    if not uploaded.ok:
        raise AppError(
            "Kategori resmi yüklenirken bir hata oluştu: " + uploaded.error_text(),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return uploaded.paths[0]


def create_category(db: Session, storage: UploadStorage, data: CategoryCreate) -> CategoryModel:
    _check_parent(db, None, data.parent_id)

    image_path = _upload_category_image(storage, data.name, data.image)
    category = CategoryModel(
        name=data.name,
        description=data.description,
        parent_id=data.parent_id,
        image=image_path,
    )
    db.add(category)
    try:
        _commit_name(db)
    except AppError:
        storage.delete_image(image_path)
        raise
    db.refresh(category)
    return category


def update_category(db: Session, storage: UploadStorage, data: CategoryUpdate) -> CategoryModel:
    category = get_category_or_404(db, data.id)

    if "parent_id" in data.model_fields_set:
        _check_parent(db, category.id, data.parent_id)

    old_image = category.image
    new_image = None
    if data.image:
        new_image = _upload_category_image(storage, data.name or category.name, data.image)
        category.image = new_image

    if data.name:
        category.name = data.name
    if data.description:
        category.description = data.description
    if "parent_id" in data.model_fields_set:
        category.parent_id = data.parent_id

    try:
        _commit_name(db)
    except AppError:
        if new_image:
            storage.delete_image(new_image)
        raise

    # eski resim ancak kayıt güncellendikten sonra silinir
    if new_image and old_image and not storage.delete_image(old_image):
        logger.warning("Eski kategori resmi silinemedi: %s", old_image)
    db.refresh(category)
    return category


def delete_category(db: Session, storage: UploadStorage, category_id: int):
    category = get_category_or_404(db, category_id)

    has_children = db.query(CategoryModel).filter(CategoryModel.parent_id == category.id).first()
    if has_children:
        raise AppError("Bu kategori silinemez çünkü alt kategorilere sahip.", status.HTTP_409_CONFLICT)

    has_products = db.query(ProductModel).filter(ProductModel.category_id == category.id).first()
    if has_products:
        raise AppError("Bu kategori silinemez çünkü kategoriye bağlı ürünler var.", status.HTTP_409_CONFLICT)

    if category.image and not storage.delete_image(category.image):
        logger.warning("Kategori resmi silinemedi: %s", category.image)

    db.delete(category)
    db.commit()
