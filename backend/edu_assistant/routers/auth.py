from datetime import datetime, timedelta, timezone
from typing import Optional
import logging
import uuid

from fastapi import APIRouter, HTTPException, Depends
from fastapi.security import OAuth2PasswordRequestForm, OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field

from ..settings import settings
from sqlalchemy.orm import Session
from ..db import get_db
from ..models import User, AuthSession

router = APIRouter(prefix="/api/auth", tags=["auth"])

logger = logging.getLogger(__name__)
logging.getLogger('passlib').setLevel(logging.ERROR)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token")

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class Token(BaseModel):
	access_token: str
	token_type: str = "bearer"


class RegisterRequest(BaseModel):
	name: str = Field(min_length=1, max_length=128)
	email: str = Field(pattern=EMAIL_PATTERN, max_length=256)
	password: str = Field(min_length=6)


class LoginRequest(BaseModel):
	email: str
	password: str


class ProfileUpdate(BaseModel):
	name: Optional[str] = Field(default=None, max_length=128)
	avatar: Optional[str] = Field(default=None, max_length=512)


class ChangePasswordRequest(BaseModel):
	current_password: str
	new_password: str = Field(min_length=6)


def _bcrypt_safe(password: str) -> str:
	# Truncate password to 72 bytes for bcrypt compatibility
	password_bytes = password.encode('utf-8')
	if len(password_bytes) > 72:
		password_bytes = password_bytes[:72]
	return password_bytes.decode('utf-8', errors='ignore')


def hash_password(password: str) -> str:
	return pwd_context.hash(_bcrypt_safe(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
	return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
	user = db.query(User).filter(User.email == email.strip().lower()).first()
	if user and verify_password(password, user.password_hash):
		return user
	return None


def _resolve_expiry(expires_delta: Optional[timedelta]) -> datetime:
	delta = expires_delta
	if delta is None:
		minutes = settings.access_token_expire_minutes
		delta = timedelta(minutes=minutes) if minutes > 0 else timedelta(days=1)
	now = datetime.now(timezone.utc)
	try:
		return now + delta
	except OverflowError:
		# Cap at far future but within datetime bounds
		return datetime.max.replace(tzinfo=timezone.utc)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
	to_encode = data.copy()
	expire = _resolve_expiry(expires_delta)
	to_encode.update({"exp": expire})
	encoded_jwt = jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
	return encoded_jwt


def _open_session(db: Session, user: User) -> str:
	session_id = uuid.uuid4().hex
	db.add(AuthSession(session_id=session_id, user_id=user.id))
	db.commit()
	return create_access_token({"sub": user.id, "jti": session_id})


def _decode_token(token: str) -> tuple[str, str]:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	try:
		payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
	except JWTError:
		raise credentials_exception
	user_id: str | None = payload.get("sub")
	jti: str | None = payload.get("jti")
	if user_id is None or jti is None:
		raise credentials_exception
	return user_id, jti


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(status_code=401, detail="Could not validate credentials")
	user_id, jti = _decode_token(token)
	# A token is only valid while its session row exists (logout deletes it)
	row = db.get(AuthSession, jti)
	if not row or row.user_id != user_id:
		raise credentials_exception
	user = db.get(User, user_id)
	if user is None:
		raise credentials_exception
	if not user.is_active:
		raise HTTPException(status_code=403, detail="Account is disabled")
	row.last_activity_at = datetime.utcnow()
	db.commit()
	return user


@router.post("/register", status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
	email = req.email.strip().lower()
	existing = db.query(User).filter(User.email == email).first()
	if existing:
		raise HTTPException(status_code=409, detail="Email already in use")
	user = User(name=req.name.strip(), email=email, password_hash=hash_password(req.password), role="user", is_active=True)
	db.add(user)
	db.commit()
	db.refresh(user)
	logger.info("Registered user %s", user.id)
	token = _open_session(db, user)
	return {"message": "User registered successfully", "user": user.to_dict(), "token": token}


def _login(db: Session, email: str, password: str) -> tuple[User, str]:
	user = authenticate_user(db, email, password)
	if not user:
		raise HTTPException(status_code=401, detail="Invalid email or password")
	if not user.is_active:
		raise HTTPException(status_code=403, detail="Account is disabled")
	user.last_login = datetime.utcnow()
	db.commit()
	return user, _open_session(db, user)


@router.post("/login")
async def login(req: LoginRequest, db: Session = Depends(get_db)):
	user, token = _login(db, req.email, req.password)
	return {"message": "Login successful", "user": user.to_dict(), "token": token}


@router.post("/token", response_model=Token)
async def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
	_, access_token = _login(db, form_data.username, form_data.password)
	return Token(access_token=access_token)


@router.post("/logout")
async def logout(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)):
	_, jti = _decode_token(token)
	row = db.get(AuthSession, jti)
	if row:
		db.delete(row)
		db.commit()
	return {"message": "Logged out successfully"}


@router.get("/profile")
async def profile(user: User = Depends(get_current_user)):
	return {"user": user.to_dict()}


@router.put("/profile")
async def update_profile(req: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if req.name:
		user.name = req.name.strip()
	if req.avatar:
		user.avatar = req.avatar
	db.commit()
	db.refresh(user)
	return {"message": "Profile updated successfully", "user": user.to_dict()}


@router.put("/change-password")
async def change_password(req: ChangePasswordRequest, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	if not verify_password(req.current_password, user.password_hash):
		raise HTTPException(status_code=400, detail="Current password is incorrect")
	user.password_hash = hash_password(req.new_password)
	db.commit()
	return {"message": "Password changed successfully"}
