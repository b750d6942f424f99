import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .config import settings
from .database import get_db
from .errors import BadRequest, ExpiredToken, InvalidToken, Unauthenticated

logger = logging.getLogger(__name__)

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(email: str, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": email, "iat": now, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> str:
    """Return the e-mail carried by ``token``.

    Raises ``ExpiredToken`` when the signature is valid but the token is past
    its expiry, and ``InvalidToken`` for anything else that fails to decode.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise ExpiredToken()
    except JWTError:
        raise InvalidToken()
    email = payload.get("sub")
    if not email:
        raise InvalidToken()
    return email


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def register(db: Session, request: schemas.RegisterRequest) -> str:
    if get_user_by_email(db, request.email):
        raise BadRequest("Email already registered")

    db_user = models.User(
        username=request.username,
        email=request.email,
        hashed_password=get_password_hash(request.password),
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise BadRequest("Email already registered")

    logger.info("Registered user %s", db_user.id)
    return create_access_token(request.email)


def login(db: Session, request: schemas.LoginRequest) -> str:
    user = get_user_by_email(db, request.email)
    if user is None or not verify_password(request.password, user.hashed_password):
        logger.info("Rejected login for %s", request.email)
        raise BadRequest("Invalid email or password")
    return create_access_token(user.email)


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if not token:
        raise Unauthenticated()
    email = verify_token(token)
    user = get_user_by_email(db, email)
    if user is None:
        raise InvalidToken("Invalid token: unknown user")
    return user
