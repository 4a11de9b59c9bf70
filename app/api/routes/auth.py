import logging
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, get_current_user
from app.core.errors import ConflictError, UnauthorizedError
from app.core.security import hash_password, verify_password, create_access_token
from app.db.models.user import User
from app.schemas.auth import SignupRequest, TokenResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
def signup(
    request: SignupRequest,
    db: Session = Depends(get_db)
):
    email = request.email.lower()
    existing_user = db.query(User).filter(User.email == email).first()
    if existing_user:
        raise ConflictError("Email already registered")

    user = User(
        full_name=request.full_name,
        email=email,
        password_hash=hash_password(request.password),
        role=request.role
    )

    try:
        db.add(user)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(user)

    logger.info(f"User created: user_id={user.id}, role={user.role}")
    return UserResponse.model_validate(user)


# Swagger sends "username"; it is treated as the email
@router.post("/login", response_model=TokenResponse)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    user = db.query(User).filter(User.email == form_data.username.lower()).first()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")

    token = create_access_token({"sub": str(user.id), "email": user.email, "role": user.role})
    logger.info(f"User logged in: user_id={user.id}")

    return TokenResponse(access_token=token)


@router.get("/me", response_model=UserResponse)
def me(user: User = Depends(get_current_user)):
    return UserResponse.model_validate(user)
