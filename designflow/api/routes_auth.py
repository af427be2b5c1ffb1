from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from designflow.core.authz import get_current_user
from designflow.core.errors import BadRequest, Unauthorized
from designflow.core.security import create_access_token, hash_password, verify_password
from designflow.db import repository as repo
from designflow.db.models import User
from designflow.db.session import get_db
from designflow.schemas import CheckEmailRequest, LoginRequest, SignupRequest, UserOut

router = APIRouter()


@router.post("/signup", status_code=201)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    user = repo.create_user(
        db,
        email=payload.email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        skill_level=payload.skill_level,
    )
    return {"message": "User created successfully", "userId": user.id}


@router.post("/check-email")
def check_email(payload: CheckEmailRequest, db: Session = Depends(get_db)):
    if not payload.email or not payload.email.strip():
        raise BadRequest("Email is required")
    email = payload.email.strip().lower()
    return {"exists": repo.get_user_by_email(db, email) is not None, "email": email}


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = repo.get_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise Unauthorized("Invalid email or password")
    return {"accessToken": create_access_token(user.id), "tokenType": "bearer", "userId": user.id}


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(user)}
