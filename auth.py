from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from database import get_db
from errors import AppError
from models import UserModel

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# HTTP Bearer token scheme (hata mesajlarını kendimiz üretiyoruz)
security = HTTPBearer(auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Şifreyi doğrula"""
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Şifreyi hashle"""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    """JWT access token oluştur"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def create_user_token(user: UserModel) -> str:
    return create_access_token(
        data={
            "sub": str(user.id),
            "ad": user.ad,
            "soyad": user.soyad,
            "email": user.email,
            "role": user.role,
        }
    )


def decode_user_id(token: str) -> int:
    """JWT token'ı doğrula, kullanıcı id'sini döndür"""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise AppError("Geçersiz token, lütfen tekrar giriş yapın.", status.HTTP_401_UNAUTHORIZED)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
):
    """Mevcut kullanıcıyı getir"""
    if credentials is None:
        raise AppError("Lütfen giriş yapın ve tekrar deneyin.", status.HTTP_401_UNAUTHORIZED)

    user_id = decode_user_id(credentials.credentials)
    user = db.query(UserModel).filter(UserModel.id == user_id).first()
    if user is None or not user.is_active:
        raise AppError("Geçersiz kullanıcı, lütfen tekrar giriş yapın.", status.HTTP_401_UNAUTHORIZED)
    if not user.role:
        raise AppError("Kullanıcı rolü tanımlanmamış, lütfen tekrar giriş yapın.", status.HTTP_403_FORBIDDEN)
    return user


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
):
    """Token varsa kullanıcıyı getir, yoksa ya da geçersizse None"""
    if credentials is None:
        return None
    try:
        user_id = decode_user_id(credentials.credentials)
    except AppError:
        return None
    user = db.query(UserModel).filter(UserModel.id == user_id).first()
    if user is None or not user.is_active or not user.role:
        return None
    return user


def check_admin_permission(current_user: UserModel):
    """Admin yetkisi kontrolü"""
    if current_user.role != "admin":
        raise AppError("Bu işlem için admin yetkisi gerekiyor", status.HTTP_403_FORBIDDEN)


def authenticate_user(db: Session, email: str, password: str):
    """Kullanıcıyı doğrula"""
    user = db.query(UserModel).filter(UserModel.email == email.lower()).first()
    if not user or not user.is_active or not verify_password(password, user.hashed_password):
        return False
    return user
