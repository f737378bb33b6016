# portal_service/app/auth.py

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, SECRET_KEY, SESSION_COOKIE
from .database import get_db
from .exceptions import LoginRequired, ValidationError
from .models import User
from .rendering import render
from .schemas import SessionContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

auth_router = APIRouter()


def verify_password(plain_password, hashed_password):
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password):
    return pwd_context.hash(password)


def get_user(db: Session, username: str):
    result = db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


def authenticate_user(db: Session, username: str, password: str):
    user = get_user(db, username)
    if not user:
        return False
    if not verify_password(password, user.hashed_password):
        return False
    return user


def create_user(db: Session, username: str, password: str, moodle_token: str):
    """Store a new user. A taken username surfaces as ValidationError."""
    user = User(
        username=username,
        hashed_password=get_password_hash(password),
        moodle_token=moodle_token,
        full_name=username,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ValidationError(f"username {username!r} already registered") from e
    db.refresh(user)
    return user


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta if expires_delta else timedelta(minutes=15))
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def get_session_context(request: Request) -> SessionContext:
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise LoginRequired("no session cookie")
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError):
        raise LoginRequired("invalid session cookie")
    return SessionContext(user_id=user_id)


def get_current_user(context: SessionContext = Depends(get_session_context), db: Session = Depends(get_db)):
    user = db.get(User, context.user_id)
    if user is None:
        raise LoginRequired("session user no longer exists")
    return user


@auth_router.get("/register", response_class=HTMLResponse)
def register_form(request: Request):
    return render(request, "register.html")


@auth_router.post("/register")
def register(
    username: str = Form(...),
    password: str = Form(...),
    moodle_token: str = Form(""),
    db: Session = Depends(get_db),
):
    try:
        create_user(db, username, password, moodle_token)
    except ValidationError as e:
        logger.error("Registration failed: %s", e)
        return HTMLResponse("Error registering user.", status_code=500)
    logger.info("Registered user %s", username)
    return RedirectResponse("/login", status_code=303)


@auth_router.get("/login", response_class=HTMLResponse)
def login_form(request: Request):
    return render(request, "login.html")


@auth_router.post("/login")
def login(username: str = Form(...), password: str = Form(...), db: Session = Depends(get_db)):
    try:
        user = authenticate_user(db, username, password)
    except SQLAlchemyError as e:
        logger.error("Login lookup for %s failed: %s", username, e)
        return HTMLResponse("Login error.", status_code=500)
    if not user:
        return HTMLResponse("Invalid username or password. <a href='/login'>Try again</a>")
    access_token_expires = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(data={"sub": str(user.id)}, expires_delta=access_token_expires)
    response = RedirectResponse("/home", status_code=303)
    response.set_cookie(
        SESSION_COOKIE,
        access_token,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
    )
    return response


@auth_router.get("/logout")
def logout():
    response = RedirectResponse("/login", status_code=302)
    response.delete_cookie(SESSION_COOKIE)
    return response
