import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import func
from sqlalchemy.orm import Session

import category_tree
import config
import gallery as products
import ledger
import visitor_counter
from auth import (
    authenticate_user,
    check_admin_permission,
    create_user_token,
    get_current_user,
    get_optional_user,
    get_password_hash,
    verify_password,
)
from database import Base, engine, get_db
from errors import AppError, register_exception_handlers
from models import DownloadModel, FavoriteModel, LikeModel, ProductModel, ReportModel, UserModel
from schemas import (
    AddGalleryRequest,
    AdminUserCreate,
    AdminUserUpdate,
    BannerRequest,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ChangeEmailRequest,
    ChangePasswordRequest,
    GalleryPhotosRequest,
    GalleryRequest,
    IdRequest,
    LoginRequest,
    ProductActionRequest,
    ProductCreate,
    ProductDetailRequest,
    ProductListRequest,
    ProductResponse,
    ProductUpdate,
    RegisterRequest,
    ReportCreate,
    ReportListRequest,
    ReportResponse,
    UpdateGalleryRequest,
    UserDetailRequest,
    UserResponse,
    VisitorRangeRequest,
    VisitRequest,
    VisitResponse,
)
from uploads import UploadStorage, get_storage

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Veritabanı tablolarını oluştur
Base.metadata.create_all(bind=engine)

# FastAPI app
app = FastAPI(title="Okulix API", description="Kategori, ürün, galeri, ziyaretçi ve rapor yönetimi")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Yüklenen dosyalar sadece okunur olarak servis edilir
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_PATH, check_dir=False), name="uploads")


def ok(message: str, data=None) -> dict:
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = data
    return body


def user_stats(db: Session, user: UserModel) -> dict:
    """Kullanıcı bilgisi + beğeni/favori/indirme sayıları"""
    data = UserResponse.model_validate(user).model_dump(by_alias=True)
    data["likes"] = db.query(LikeModel).filter(LikeModel.user_id == user.id).count()
    data["favorites"] = db.query(FavoriteModel).filter(FavoriteModel.user_id == user.id).count()
    data["downloads"] = db.query(DownloadModel).filter(DownloadModel.user_id == user.id).count()
    return data


def email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(UserModel).filter(UserModel.email == email.lower())
    if exclude_id is not None:
        query = query.filter(UserModel.id != exclude_id)
    return query.first() is not None


# --- API Rotaları ---
@app.get("/")
def anasayfa():
    return ok("Okulix API çalışıyor")


# Authentication endpoints
@app.post("/api/auth/register", status_code=status.HTTP_201_CREATED)
def register(user_data: RegisterRequest, db: Session = Depends(get_db)):
    """Yeni kullanıcı kaydı"""
    if email_taken(db, user_data.email):
        raise AppError("Bu email zaten kayıtlı. Lütfen başka bir email kullanın.", status.HTTP_400_BAD_REQUEST)

    new_user = UserModel(
        ad=user_data.ad,
        soyad=user_data.soyad,
        email=user_data.email.lower(),
        hashed_password=get_password_hash(user_data.password),
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    return ok("Kullanıcı başarıyla kaydedildi", {
        "user": UserResponse.model_validate(new_user),
        "token": create_user_token(new_user),
    })


@app.post("/api/auth/login")
def login(form_data: LoginRequest, db: Session = Depends(get_db)):
    """Kullanıcı girişi"""
    user = authenticate_user(db, form_data.email, form_data.password)
    if not user:
        raise AppError(
            "Email veya şifre hatalı ya da kullanıcı pasif. Lütfen tekrar deneyin.",
            status.HTTP_401_UNAUTHORIZED,
        )

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)

    return ok("Giriş başarıyla tamamlandı", {
        "user": UserResponse.model_validate(user),
        "token": create_user_token(user),
    })


@app.post("/api/auth/profile")
def profile(db: Session = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    """Mevcut kullanıcı bilgileri"""
    return ok("Kullanıcı profili başarıyla getirildi", {"user": user_stats(db, current_user)})


@app.post("/api/auth/change-password")
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Şifre değiştir"""
    if not verify_password(payload.current_password, current_user.hashed_password):
        raise AppError("Mevcut şifre hatalı. Lütfen tekrar deneyin.", status.HTTP_401_UNAUTHORIZED)

    current_user.hashed_password = get_password_hash(payload.new_password)
    db.commit()
    return ok("Şifre başarıyla değiştirildi")


@app.post("/api/auth/change-email")
def change_email(
    payload: ChangeEmailRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Email değiştir"""
    if email_taken(db, payload.new_email):
        raise AppError("Bu email zaten kayıtlı. Lütfen başka bir email kullanın.", status.HTTP_400_BAD_REQUEST)
    if not verify_password(payload.password, current_user.hashed_password):
        raise AppError("Şifre hatalı. Lütfen tekrar deneyin.", status.HTTP_401_UNAUTHORIZED)

    current_user.email = payload.new_email.lower()
    db.commit()
    db.refresh(current_user)
    return ok("Email başarıyla değiştirildi", {"user": UserResponse.model_validate(current_user)})


# Admin kullanıcı yönetimi
@app.post("/api/auth/add-admin", status_code=status.HTTP_201_CREATED)
def add_user_as_admin(
    user_data: AdminUserCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Kullanıcı ekle (Admin)"""
    check_admin_permission(current_user)

    if email_taken(db, user_data.email):
        raise AppError("Bu email zaten kayıtlı. Lütfen başka bir email kullanın.", status.HTTP_400_BAD_REQUEST)

    new_user = UserModel(
        ad=user_data.ad,
        soyad=user_data.soyad,
        email=user_data.email.lower(),
        hashed_password=get_password_hash(user_data.password),
        role=user_data.role,
        is_active=user_data.is_active,
        last_login_at=datetime.now(timezone.utc),
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return ok("Kullanıcı başarıyla eklendi", {"user": UserResponse.model_validate(new_user)})


@app.post("/api/auth/update-admin")
def update_user_as_admin(
    user_data: AdminUserUpdate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Kullanıcı güncelle (Admin)"""
    check_admin_permission(current_user)

    user = db.query(UserModel).filter(UserModel.id == user_data.id).first()
    if not user:
        raise AppError("Kullanıcı bulunamadı. Lütfen geçerli bir ID girin.", status.HTTP_404_NOT_FOUND)

    if user_data.email and email_taken(db, user_data.email, exclude_id=user.id):
        raise AppError("Bu email zaten kayıtlı. Lütfen başka bir email kullanın.", status.HTTP_400_BAD_REQUEST)

    if user_data.ad:
        user.ad = user_data.ad
    if user_data.soyad:
        user.soyad = user_data.soyad
    if user_data.email:
        user.email = user_data.email.lower()
    if user_data.password:
        user.hashed_password = get_password_hash(user_data.password)
    if user_data.role:
        user.role = user_data.role
    if user_data.is_active is not None:
        user.is_active = user_data.is_active

    db.commit()
    db.refresh(user)
    return ok("Kullanıcı başarıyla güncellendi", {"user": UserResponse.model_validate(user)})


@app.post("/api/auth/delete-admin")
def delete_user_as_admin(
    payload: IdRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Kullanıcı sil (Admin)"""
    check_admin_permission(current_user)

    user = db.query(UserModel).filter(UserModel.id == payload.id).first()
    if not user:
        raise AppError("Kullanıcı bulunamadı. Lütfen geçerli bir ID girin.", status.HTTP_404_NOT_FOUND)
    if user.id == current_user.id:
        raise AppError("Kendi hesabınızı silemezsiniz.", status.HTTP_400_BAD_REQUEST)

    # kullanıcıya bağlı kayıtlar temizlenir, raporlar kullanıcısız kalır
    ledger.remove_user_rows(db, user.id)
    db.query(DownloadModel).filter(DownloadModel.user_id == user.id).delete(synchronize_session=False)
    db.query(ReportModel).filter(ReportModel.user_id == user.id).update(
        {"user_id": None}, synchronize_session=False
    )
    db.delete(user)
    db.commit()
    return ok("Kullanıcı başarıyla silindi")


@app.post("/api/auth/get-all-admin")
def get_all_users_as_admin(db: Session = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    """Tüm kullanıcıları listele (Admin)"""
    check_admin_permission(current_user)

    users = db.query(UserModel).order_by(UserModel.created_at.desc(), UserModel.id.desc()).all()
    return ok("Kullanıcılar başarıyla getirildi", {"users": [user_stats(db, u) for u in users]})


@app.post("/api/auth/get-detail-admin")
def get_user_detail_as_admin(
    payload: UserDetailRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Kullanıcı detayı (Admin)"""
    check_admin_permission(current_user)

    user = db.query(UserModel).filter(UserModel.id == payload.user_id).first()
    if not user:
        raise AppError("Kullanıcı bulunamadı.", status.HTTP_404_NOT_FOUND)
    return ok("Kullanıcı profili başarıyla getirildi", {"user": user_stats(db, user)})


@app.post("/api/setup-admin", status_code=status.HTTP_201_CREATED)
def setup_admin(db: Session = Depends(get_db)):
    """İlk admin kullanıcısını oluştur"""
    admin_exists = db.query(UserModel).filter(UserModel.role == "admin").first()
    if admin_exists:
        raise AppError("Admin kullanıcısı zaten mevcut", status.HTTP_400_BAD_REQUEST)

    admin_user = UserModel(
        ad="Admin",
        soyad="Kullanıcı",
        email=config.ADMIN_EMAIL.lower(),
        hashed_password=get_password_hash(config.ADMIN_PASSWORD),
        role="admin",
    )
    db.add(admin_user)
    db.commit()
    return ok("Admin kullanıcısı oluşturuldu", {"email": admin_user.email})


# Kategori işlemleri
@app.post("/api/category")
def list_categories(db: Session = Depends(get_db)):
    """Kategori ağacını getir"""
    return ok("Kategoriler başarıyla getirildi", category_tree.list_tree(db))


@app.post("/api/category/detail")
def get_category(payload: IdRequest, db: Session = Depends(get_db)):
    """Tek kategori ve alt kategorileri"""
    return ok("Kategori başarıyla getirildi.", category_tree.get_subtree(db, payload.id))


@app.post("/api/category/add", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Yeni kategori ekle (Admin)"""
    check_admin_permission(current_user)
    category = category_tree.create_category(db, storage, payload)
    return ok("Kategori başarıyla oluşturuldu", CategoryResponse.model_validate(category))


@app.post("/api/category/update")
def update_category(
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Kategori güncelle (Admin)"""
    check_admin_permission(current_user)
    category = category_tree.update_category(db, storage, payload)
    return ok("Kategori başarıyla güncellendi.", CategoryResponse.model_validate(category))


@app.post("/api/category/delete")
def delete_category(
    payload: IdRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Kategori sil (Admin)"""
    check_admin_permission(current_user)
    category_tree.delete_category(db, storage, payload.id)
    return ok("Kategori başarıyla silindi.")


# Ürün işlemleri
@app.post("/api/product")
def list_products(payload: Optional[ProductListRequest] = None, db: Session = Depends(get_db)):
    """Aktif ürünleri listele (alt kategoriler dahil)"""
    category_name = payload.category_name if payload else None
    items = products.list_products(db, category_name)
    return ok("Ürünler başarıyla getirildi", [ProductResponse.from_model(p, with_category=True) for p in items])


@app.post("/api/product/detail")
def get_product(payload: ProductDetailRequest, db: Session = Depends(get_db)):
    """İsme göre ürün getir"""
    product = products.get_product_by_name(db, payload.name)
    return ok("Ürün başarıyla getirildi.", ProductResponse.from_model(product))


@app.post("/api/product/add", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Ürün ekle (Admin)"""
    check_admin_permission(current_user)
    product = products.create_product(db, payload)
    return ok("Ürün başarıyla oluşturuldu.", ProductResponse.from_model(product))


@app.post("/api/product/add-banner", status_code=status.HTTP_201_CREATED)
def create_product_banner(
    payload: BannerRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Ürün banner'ı ekle (Admin)"""
    check_admin_permission(current_user)
    product = products.set_banner(db, storage, payload.id, payload.banner)
    return ok("Ürün banner'ı başarıyla eklendi.", ProductResponse.from_model(product))


@app.post("/api/product/update")
def update_product(
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Ürün güncelle (Admin)"""
    check_admin_permission(current_user)
    product = products.update_product(db, storage, payload)
    return ok("Ürün başarıyla güncellendi.", ProductResponse.from_model(product))


@app.post("/api/product/delete")
def delete_product(
    payload: IdRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Ürün sil (Admin)"""
    check_admin_permission(current_user)
    products.delete_product(db, storage, payload.id)
    return ok("Ürün başarıyla silindi.")


# Galeri işlemleri
@app.post("/api/product/add-gallery", status_code=status.HTTP_201_CREATED)
def create_product_gallery(
    payload: AddGalleryRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Galeri ekle (Admin)"""
    check_admin_permission(current_user)
    product = products.add_gallery(db, storage, payload.id, payload.gallery)
    return ok("Galeri başarıyla eklendi.", ProductResponse.from_model(product))


@app.post("/api/product/update-gallery")
def update_product_gallery(
    payload: UpdateGalleryRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Galeri adını ve bilgilerini güncelle (Admin)"""
    check_admin_permission(current_user)
    product = products.rename_gallery(db, storage, payload.id, payload.gallery_name, payload.gallery)
    return ok("Galeri başarıyla güncellendi.", ProductResponse.from_model(product))


@app.post("/api/product/delete-gallery")
def delete_product_gallery(
    payload: GalleryRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Galeri sil (Admin)"""
    check_admin_permission(current_user)
    product = products.delete_gallery(db, storage, payload.id, payload.gallery_name)
    return ok("Galeri başarıyla silindi.", ProductResponse.from_model(product))


@app.post("/api/product/add-photo-to-gallery", status_code=status.HTTP_201_CREATED)
def add_photo_to_gallery(
    payload: GalleryPhotosRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Galeriye resim ekle (Admin)"""
    check_admin_permission(current_user)
    product = products.add_photos(db, storage, payload.id, payload.gallery_name, payload.gallery.images)
    return ok("Galeri resimleri başarıyla eklendi.", ProductResponse.from_model(product))


@app.post("/api/product/delete-photo-from-gallery")
def delete_photo_from_gallery(
    payload: GalleryPhotosRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: UserModel = Depends(get_current_user),
):
    """Galeriden resim sil (Admin)"""
    check_admin_permission(current_user)
    product = products.remove_photos(db, storage, payload.id, payload.gallery_name, payload.gallery.images)
    return ok("Galeri resimleri başarıyla silindi.", ProductResponse.from_model(product))


# Beğeni / favori / indirme
@app.post("/api/product/like")
def like_product(
    payload: ProductActionRequest,
    db: Session = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_optional_user),
):
    """Ürünü beğen ya da beğeniyi kaldır"""
    likes_count = ledger.toggle(
        db, LikeModel, payload.product_id, current_user,
        login_message="Beğenmek için giriş yapmalısınız.",
    )
    return ok("Beğeni durumu güncellendi", {"likesCount": likes_count})


@app.post("/api/product/favorite")
def favorite_product(
    payload: ProductActionRequest,
    db: Session = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_optional_user),
):
    """Ürünü favorilere ekle ya da çıkar"""
    favorites_count = ledger.toggle(
        db, FavoriteModel, payload.product_id, current_user,
        login_message="Favorilere eklemek için giriş yapmalısınız.",
    )
    return ok("Favori durumu güncellendi", {"favoritesCount": favorites_count})


@app.post("/api/product/download")
def download_product(
    payload: GalleryRequest,
    db: Session = Depends(get_db),
    storage: UploadStorage = Depends(get_storage),
    current_user: Optional[UserModel] = Depends(get_optional_user),
):
    """Galeriyi zip olarak indir"""
    filename, buffer = products.download_gallery(db, storage, payload.id, payload.gallery_name, current_user)
    return StreamingResponse(
        buffer,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# Ziyaretçi işlemleri
@app.post("/api/visitors")
def add_visitor(payload: VisitRequest, db: Session = Depends(get_db)):
    """Sayfa ziyaretini kaydet"""
    visitor, created = visitor_counter.record_visit(db, payload.page_name)
    message = "Yeni ziyaretçi kaydı oluşturuldu" if created else "Ziyaretçi sayısı güncellendi"
    return ok(message, VisitResponse.model_validate(visitor))


@app.post("/api/visitors/daily")
def get_daily_visitors(payload: Optional[VisitorRangeRequest] = None, db: Session = Depends(get_db)):
    """Günlük ziyaretçi istatistikleri"""
    payload = payload or VisitorRangeRequest()
    data = visitor_counter.daily_totals(db, payload.start_date, payload.end_date)
    return ok("Günlük ziyaretçi istatistikleri başarıyla getirildi", data)


@app.post("/api/visitors/pages")
def get_page_visitors(payload: Optional[VisitorRangeRequest] = None, db: Session = Depends(get_db)):
    """Sayfa bazında ziyaretçi istatistikleri"""
    payload = payload or VisitorRangeRequest()
    data = visitor_counter.per_page_totals(db, payload.start_date, payload.end_date, payload.page_name)
    return ok("Sayfa bazında ziyaretçi istatistikleri başarıyla getirildi", data)


@app.post("/api/visitors/stats")
def get_visitor_stats(db: Session = Depends(get_db)):
    """Genel ziyaretçi istatistikleri"""
    return ok("Genel ziyaretçi istatistikleri başarıyla getirildi", visitor_counter.overall_stats(db))


@app.post("/api/admin/visitors/daily")
def admin_daily_visitors(
    payload: Optional[VisitorRangeRequest] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Günlük ziyaretçi istatistikleri (Admin)"""
    check_admin_permission(current_user)
    return get_daily_visitors(payload, db)


@app.post("/api/admin/visitors/pages")
def admin_page_visitors(
    payload: Optional[VisitorRangeRequest] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Sayfa bazında ziyaretçi istatistikleri (Admin)"""
    check_admin_permission(current_user)
    return get_page_visitors(payload, db)


@app.post("/api/admin/visitors/stats")
def admin_visitor_stats(db: Session = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    """Genel ziyaretçi istatistikleri (Admin)"""
    check_admin_permission(current_user)
    return get_visitor_stats(db)


# Rapor işlemleri
def get_report_or_404(db: Session, report_id: int) -> ReportModel:
    report = db.query(ReportModel).filter(ReportModel.id == report_id).first()
    if not report:
        raise AppError("Rapor bulunamadı.", status.HTTP_404_NOT_FOUND)
    return report


@app.post("/api/report", status_code=status.HTTP_201_CREATED)
def add_report(
    payload: ReportCreate,
    db: Session = Depends(get_db),
    current_user: Optional[UserModel] = Depends(get_optional_user),
):
    """Rapor ekle (herkese açık, kullanıcı opsiyonel)"""
    if payload.product_id is not None:
        products.get_product_or_404(db, payload.product_id)

    report = ReportModel(
        product_id=payload.product_id,
        user_id=current_user.id if current_user else None,
        message=payload.message.strip(),
        email=payload.email.lower(),
    )
    db.add(report)
    db.commit()
    db.refresh(report)
    return ok("Rapor başarıyla oluşturuldu", ReportResponse.model_validate(report))


@app.post("/api/report/list")
def get_reports(
    payload: Optional[ReportListRequest] = None,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Raporları listele (Admin)"""
    check_admin_permission(current_user)
    payload = payload or ReportListRequest()

    query = db.query(ReportModel)
    if payload.status == "read":
        query = query.filter(ReportModel.readed_at.isnot(None))
    elif payload.status == "unread":
        query = query.filter(ReportModel.readed_at.is_(None))
    if payload.product_id is not None:
        query = query.filter(ReportModel.product_id == payload.product_id)
    if payload.user_id is not None:
        query = query.filter(ReportModel.user_id == payload.user_id)

    total = query.count()
    reports = (
        query.order_by(ReportModel.created_at.desc(), ReportModel.id.desc())
        .offset((payload.page - 1) * payload.limit)
        .limit(payload.limit)
        .all()
    )

    return ok("Raporlar başarıyla getirildi", {
        "reports": [ReportResponse.model_validate(r) for r in reports],
        "pagination": {
            "current": payload.page,
            "pages": -(-total // payload.limit),
            "total": total,
        },
    })


@app.post("/api/report/detail")
def get_report(
    payload: IdRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Tek rapor getir (Admin)"""
    check_admin_permission(current_user)
    report = get_report_or_404(db, payload.id)
    return ok("Rapor başarıyla getirildi", ReportResponse.model_validate(report))


@app.post("/api/report/mark-read")
def mark_report_as_read(
    payload: IdRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Raporu okundu olarak işaretle (Admin, tek seferlik)"""
    check_admin_permission(current_user)
    report = get_report_or_404(db, payload.id)

    if report.readed_at is not None:
        raise AppError("Bu rapor zaten okunmuş.", status.HTTP_400_BAD_REQUEST)

    report.readed_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(report)
    return ok("Rapor okundu olarak işaretlendi", ReportResponse.model_validate(report))


@app.post("/api/report/delete")
def delete_report(
    payload: IdRequest,
    db: Session = Depends(get_db),
    current_user: UserModel = Depends(get_current_user),
):
    """Rapor sil (Admin)"""
    check_admin_permission(current_user)
    report = get_report_or_404(db, payload.id)
    db.delete(report)
    db.commit()
    return ok("Rapor başarıyla silindi")


@app.post("/api/report/stats")
def get_report_stats(db: Session = Depends(get_db), current_user: UserModel = Depends(get_current_user)):
    """Rapor istatistikleri (Admin)"""
    check_admin_permission(current_user)

    now = datetime.now(timezone.utc)
    total = db.query(ReportModel).count()
    read = db.query(ReportModel).filter(ReportModel.readed_at.isnot(None)).count()
    recent = db.query(ReportModel).filter(ReportModel.created_at >= now - timedelta(days=7)).count()
    monthly = db.query(ReportModel).filter(ReportModel.created_at >= now - timedelta(days=30)).count()

    top_reported = (
        db.query(ProductModel.id, ProductModel.name, func.count(ReportModel.id).label("count"))
        .join(ReportModel, ReportModel.product_id == ProductModel.id)
        .group_by(ProductModel.id, ProductModel.name)
        .order_by(func.count(ReportModel.id).desc(), ProductModel.id)
        .limit(5)
        .all()
    )

    return ok("Rapor istatistikleri başarıyla getirildi", {
        "total": total,
        "read": read,
        "unread": total - read,
        "recent": recent,
        "monthly": monthly,
        "readPercentage": round(read / total * 100) if total else 0,
        "topReportedProducts": [
            {"productId": row.id, "productName": row.name, "count": row.count} for row in top_reported
        ],
    })


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
