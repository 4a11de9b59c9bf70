from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import ExpiredSignatureError, JWTError
from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.security import decode_access_token
from app.db.session import SessionLocal
from app.db.models.user import User, ROLE_EMPLOYER

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_db():
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Resolve the bearer token to a User."""
    if not token:
        raise UnauthorizedError("Missing or invalid authorization token")

    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        raise UnauthorizedError("Token expired")
    except JWTError:
        raise UnauthorizedError("Invalid token")

    user_id = payload.get("sub")
    if user_id is None:
        raise UnauthorizedError("Invalid token")

    try:
        user = db.query(User).filter(User.id == int(user_id)).first()
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid token")

    if not user:
        raise UnauthorizedError("Invalid token")
    return user


def require_employer(user: User = Depends(get_current_user)) -> User:
    """Only employers may use the screening and job posting endpoints."""
    if user.role != ROLE_EMPLOYER:
        raise ForbiddenError("Only employers can access this resource")
    return user


def get_screening_queue(request: Request):
    """The task queue built at startup and kept on app.state."""
    return request.app.state.screening_queue
