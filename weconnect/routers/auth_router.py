# weconnect/routers/auth_router.py
from fastapi import APIRouter, Depends, status
import structlog

from ..dependencies.auth import get_current_user, get_user_service, require_token
from ..errors import success_body
from ..UAA.models import User
from ..UAA.schemas import LoginRequest, SafeUser, SignupRequest
from ..UAA.services import UserService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/auth", tags=["auth"])


def _safe(user: User) -> dict:
    return SafeUser.model_validate(user).model_dump(mode="json", by_alias=True)


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(user_in: SignupRequest, svc: UserService = Depends(get_user_service)):
    created = await svc.register_user(user_in)
    token = svc.issue_token(created)
    return success_body({"user": _safe(created), "token": token}, "Registration successful.")


@router.post("/login")
async def login(form_data: LoginRequest, svc: UserService = Depends(get_user_service)):
    """
    Email + password login. Unknown email and wrong password produce the same
    401 so the response does not reveal whether an account exists.
    """
    user = await svc.authenticate_user(form_data.email.strip().lower(), form_data.password)
    token = svc.issue_token(user)
    return success_body({"user": _safe(user), "token": token}, "Login successful.")


@router.post("/logout")
async def logout(token: str = Depends(require_token), svc: UserService = Depends(get_user_service)):
    await svc.logout(token)
    return success_body(None, "Logout successful.")


@router.get("/me")
async def me(current_user: User = Depends(get_current_user)):
    return success_body(_safe(current_user))
