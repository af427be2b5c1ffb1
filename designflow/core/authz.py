from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from designflow.core.errors import Unauthorized
from designflow.core.guard import AuthorizationGuard
from designflow.core.security import decode_access_token
from designflow.db.models import User
from designflow.db.session import get_db

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def _user_from_token(token: Optional[str], db: Session) -> Optional[User]:
    if not token:
        return None
    payload = decode_access_token(token)
    if not payload or not payload.get("sub"):
        return None
    return db.get(User, str(payload["sub"]))


def get_current_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    if not token:
        raise Unauthorized(headers={"WWW-Authenticate": "Bearer"})
    user = _user_from_token(token, db)
    if not user:
        raise Unauthorized("Invalid or expired session", headers={"WWW-Authenticate": "Bearer"})
    return user


def get_optional_user(token: Optional[str] = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> Optional[User]:
    return _user_from_token(token, db)


def get_guard(db: Session = Depends(get_db)) -> AuthorizationGuard:
    return AuthorizationGuard(db)
