"""User account endpoints.

Registration and login are public and rate-limited; they return a bearer
session token. The /me routes act only on the authenticated user.
Security: password hashes never leave this module.
"""
import logging
import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request

from models.dashboard import Envelope
from models.users import AuthResponse, UserLogin, UserRegister, UserResponse, UserUpdate
from services.activity import ActivityLogger
from services.auth import get_current_user
from services.database import get_db
from services.passwords import hash_password, verify_password
from services.rate_limit import limiter
from services.security_logger import log_login_attempt
from services.session_token import create_session_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


def _find_by_email(db, email: str):
    response = db.table("users").select("*").eq("email", email.lower()).limit(1).execute()
    return response.data[0] if response.data else None


def _auth_payload(user: dict) -> AuthResponse:
    session = create_session_token(user["id"], user.get("email"))
    return AuthResponse(
        id=user["id"],
        name=user["name"],
        email=user["email"],
        token=session["token"],
    )


def _user_response(user: dict) -> UserResponse:
    return UserResponse(
        id=user["id"],
        name=user["name"],
        email=user["email"],
        created_at=user.get("created_at"),
    )


@router.post("/register", response_model=Envelope[AuthResponse], status_code=201)
@limiter.limit("20/minute")
async def register_user(
    request: Request,
    account: UserRegister,
    db = Depends(get_db),
):
    """Create an account and return a session token"""
    if _find_by_email(db, account.email):
        raise HTTPException(status_code=400, detail="User already exists")

    try:
        response = db.table("users").insert({
            "id": str(uuid.uuid4()),
            "name": account.name,
            "email": account.email.lower(),
            "password_hash": hash_password(account.password),
        }).execute()
    except Exception as e:
        # A concurrent registration can win between the lookup and the insert
        if _find_by_email(db, account.email):
            raise HTTPException(status_code=400, detail="User already exists")
        logger.error(f"Error creating user {account.email}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    if not response.data:
        raise HTTPException(status_code=400, detail="Invalid user data")

    user = response.data[0]
    logger.info(f"Registered user id={user['id']}")
    return Envelope(data=_auth_payload(user))


@router.post("/login", response_model=Envelope[AuthResponse])
@limiter.limit("20/minute")
async def login_user(
    request: Request,
    credentials: UserLogin,
    background_tasks: BackgroundTasks,
    db = Depends(get_db),
):
    """Exchange email and password for a session token"""
    user = _find_by_email(db, credentials.email)
    if not user or not verify_password(credentials.password, user.get("password_hash", "")):
        log_login_attempt(credentials.email, success=False)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    log_login_attempt(credentials.email, success=True)
    ActivityLogger(db).dispatch(background_tasks, user["id"], "login", "password login")
    return Envelope(data=_auth_payload(user))


@router.get("/me", response_model=Envelope[UserResponse])
async def get_me(current_user: dict = Depends(get_current_user)):
    """Get the authenticated user's account"""
    return Envelope(data=_user_response(current_user))


@router.put("/me", response_model=Envelope[UserResponse])
async def update_me(
    updates: UserUpdate,
    db = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Update name, email, or password of the authenticated user"""
    update_data = {}
    if updates.name is not None:
        update_data["name"] = updates.name
    if updates.email is not None:
        email = updates.email.lower()
        if email != current_user["email"]:
            existing = _find_by_email(db, email)
            if existing and existing["id"] != current_user["id"]:
                raise HTTPException(status_code=400, detail="Email already in use")
        update_data["email"] = email
    if updates.password is not None:
        update_data["password_hash"] = hash_password(updates.password)

    # If nothing to update, return current record
    if not update_data:
        return Envelope(data=_user_response(current_user))

    try:
        response = db.table("users").update(update_data).eq("id", current_user["id"]).execute()
    except Exception as e:
        logger.error(f"Error updating user {current_user['id']}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    updated_user = response.data[0] if response.data else current_user
    return Envelope(data=_user_response(updated_user))


@router.delete("/me", response_model=Envelope[dict])
async def delete_me(
    db = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Delete the authenticated user's account"""
    try:
        db.table("users").delete().eq("id", current_user["id"]).execute()
    except Exception as e:
        logger.error(f"Error deleting user {current_user['id']}: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    logger.info(f"Deleted user id={current_user['id']}")
    return Envelope(data={})
