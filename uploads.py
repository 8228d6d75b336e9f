"""
Dosya yükleme yardımcıları.

Base64 olarak gelen resimleri upload klasörüne kaydeder, klasör adı
değiştirme ve silme işlemlerini yapar. Kayıtlarda tutulan yollar upload
kökünden itibaren göreli ve "/" ayraçlıdır (örn. "product/Widget/Kapak/gallery_1700000000000_0.png").
"""
import base64
import binascii
import logging
import re
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import config

logger = logging.getLogger(__name__)

IMAGE_DATA_URL_RE = re.compile(
    r"^data:image/(jpeg|jpg|png|gif|webp|svg\+xml);base64,([A-Za-z0-9+/=]+)$"
)

EXTENSIONS = {"jpeg": ".jpg", "svg+xml": ".svg"}


@dataclass
class UploadedFile:
    original_name: str
    new_name: str
    relative_path: str
    size: int


@dataclass
class FailedFile:
    original_name: str
    error: str


@dataclass
class UploadResult:
    success: List[UploadedFile] = field(default_factory=list)
    failed: List[FailedFile] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and bool(self.success)

    @property
    def paths(self) -> List[str]:
        return [f.relative_path for f in self.success]

    def error_text(self) -> str:
        return ", ".join(f.error for f in self.failed)


def is_valid_image_base64(value: str) -> bool:
    """Base64 string'inin geçerli bir resim formatı olup olmadığını kontrol et"""
    return isinstance(value, str) and IMAGE_DATA_URL_RE.match(value) is not None


def decode_image(value: str, max_size_mb: float = None):
    """Data URL'i çöz, (içerik, uzantı) döndür. Geçersizse ValueError fırlatır."""
    if max_size_mb is None:
        max_size_mb = config.MAX_IMAGE_SIZE_MB

    match = IMAGE_DATA_URL_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError("Geçersiz base64 resim formatı")

    mime, payload = match.groups()
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("Base64 işleme hatası")

    if len(content) > max_size_mb * 1024 * 1024:
        raise ValueError(f"Dosya boyutu {max_size_mb:g}MB'yi aşıyor")

    return content, EXTENSIONS.get(mime, f".{mime}")


def join_path(*parts: str) -> str:
    """Mantıksal yol parçalarını birleştir"""
    cleaned = [p.replace("\\", "/").strip("/") for p in parts if p]
    return re.sub(r"/+", "/", "/".join(c for c in cleaned if c))


def check_path_segment(name: str) -> str:
    """Klasör adı olarak kullanılacak ismi doğrula. Geçersizse ValueError fırlatır."""
    cleaned = name.strip()
    if not cleaned or cleaned in (".", "..") or any(ch in cleaned for ch in "/\\\0"):
        raise ValueError("İsim '/' ya da '\\' içeremez, '.' veya '..' olamaz")
    return name


def product_path(product_name: str, gallery_name: Optional[str] = None) -> str:
    # her isim product/ altında tek bir klasör olmalı
    if gallery_name:
        return join_path("product", check_path_segment(product_name), check_path_segment(gallery_name))
    return join_path("product", check_path_segment(product_name))


def replace_segment(relative_path: str, position: int, value: str) -> str:
    """Göreli yolun verilen (negatif) konumdaki parçasını değiştir"""
    parts = relative_path.split("/")
    if len(parts) < -position:
        return relative_path
    parts[position] = value
    return "/".join(parts)


class UploadStorage:
    """Upload klasörü üzerinde dosya işlemleri"""

    def __init__(self, root=None):
        self.root = Path(root if root is not None else config.UPLOAD_PATH)

    def resolve(self, relative_path: str) -> Path:
        resolved = (self.root / relative_path).resolve()
        root = self.root.resolve()
        if resolved != root and root not in resolved.parents:
            raise ValueError(f"Upload klasörü dışına çıkan yol: {relative_path}")
        return resolved

    def upload_files(self, custom_path: str, image_name: str, files: List[str]) -> UploadResult:
        """
        Base64 listesini custom_path altına kaydeder.

        Tüm dosyalar önce doğrulanır; herhangi biri geçersizse hiçbir dosya
        yazılmaz ve hatalar `failed` içinde döner.
        """
        result = UploadResult()
        decoded = []

        for index, value in enumerate(files or []):
            try:
                content, ext = decode_image(value)
            except ValueError as e:
                result.failed.append(FailedFile(original_name=f"image_{index}", error=str(e)))
                continue
            decoded.append((index, content, ext))

        if result.failed:
            return result

        try:
            target_dir = self.resolve(join_path(custom_path))
            target_dir.mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            logger.warning("Klasör oluşturulamadı: %s (%s)", custom_path, e)
            result.failed.append(FailedFile(original_name=custom_path, error=str(e)))
            return result

        stamp = int(time.time() * 1000)
        for index, content, ext in decoded:
            new_name = f"{image_name}_{stamp}_{index}{ext}"
            try:
                (target_dir / new_name).write_bytes(content)
            except OSError as e:
                logger.warning("Dosya yazılamadı: %s (%s)", new_name, e)
                result.failed.append(FailedFile(original_name=f"image_{index}{ext}", error=str(e)))
                continue
            result.success.append(
                UploadedFile(
                    original_name=f"image_{index}{ext}",
                    new_name=new_name,
                    relative_path=join_path(custom_path, new_name),
                    size=len(content),
                )
            )

        return result

    def delete_image(self, relative_path: str) -> bool:
        """Verilen yoldaki resmi siler"""
        if not relative_path:
            return False
        try:
            path = self.resolve(relative_path)
            if not path.is_file():
                logger.warning("Dosya bulunamadı: %s", relative_path)
                return False
            path.unlink()
            return True
        except (OSError, ValueError) as e:
            logger.warning("Resim silinirken hata: %s (%s)", relative_path, e)
            return False

    def delete_directory(self, relative_path: str) -> bool:
        try:
            path = self.resolve(relative_path)
            if path == self.root.resolve():
                raise ValueError("Upload kök klasörü silinemez")
            if not path.is_dir():
                logger.warning("Klasör bulunamadı: %s", relative_path)
                return False
            shutil.rmtree(path)
            return True
        except (OSError, ValueError) as e:
            logger.warning("Klasör silinirken hata: %s (%s)", relative_path, e)
            return False

    def change_directory_name(self, old_path: str, new_path: str) -> bool:
        try:
            old = self.resolve(old_path)
            new = self.resolve(new_path)
            if not old.is_dir():
                logger.warning("Eski klasör bulunamadı: %s", old_path)
                return False
            if new.exists():
                logger.warning("Yeni klasör zaten mevcut: %s", new_path)
                return False
            old.rename(new)
            return True
        except (OSError, ValueError) as e:
            logger.warning("Klasör adı değiştirilirken hata: %s -> %s (%s)", old_path, new_path, e)
            return False

    def directory_exists(self, relative_path: str) -> bool:
        try:
            return self.resolve(relative_path).is_dir()
        except ValueError:
            return False

    def list_files(self, relative_path: str) -> List[Path]:
        """Klasördeki tüm dosyaları (alt klasörler dahil) sıralı döndür"""
        directory = self.resolve(relative_path)
        return sorted(p for p in directory.rglob("*") if p.is_file())


def get_storage() -> UploadStorage:
    return UploadStorage()
