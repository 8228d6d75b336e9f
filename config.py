"""
Proje ayarları ve ortam değişkenleri.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Dizinler ──────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent
UPLOAD_PATH = os.getenv("UPLOAD_PATH", "./uploads")

# ── Veritabanı ────────────────────────────────────────────
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./okulix.db")

# ── JWT ───────────────────────────────────────────────────
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-here-change-in-production")  # Üretimde değiştirin!
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 gün

# ── Yükleme Limitleri ─────────────────────────────────────
MAX_IMAGE_SIZE_MB = float(os.getenv("MAX_IMAGE_SIZE_MB", "5"))
ALLOWED_IMAGE_TYPES = ("jpeg", "jpg", "png", "gif", "webp", "svg+xml")

# ── Sunucu ────────────────────────────────────────────────
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ── İlk Admin ─────────────────────────────────────────────
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@okulix.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
