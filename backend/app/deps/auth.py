# app/deps/auth.py
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jose.exceptions import ExpiredSignatureError, JWTError

from app.db import get_db
from app.models import User, UserRole
from app.security import decode_token

# Exposes Bearer auth in Swagger; login endpoint issues the token
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> User:
    try:
        payload = decode_token(token)
        sub = payload.get("sub")
        if sub is None:
            raise _unauthorized("Not authenticated")
        user = db.get(User, int(sub))
    except ExpiredSignatureError:
        raise _unauthorized("Token expired")
    except (JWTError, ValueError):
        raise _unauthorized("Not authenticated")

    if not user:
        raise _unauthorized("Not authenticated")
    return user

def require_role(*allowed_roles: str):
    """
    Usage: dependencies=[Depends(require_role("admin"))]
    """
    allowed = {UserRole(r) for r in allowed_roles}

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role",
            )
        return current_user
    return dependency

def require_user_or_role(user_id_param: str, *allowed_roles: str):
    """
    Owner-or-coach guard for routes with a user id in the path.

      @router.get("/users/{user_id}")
      def get_user(user_id: int, current=Depends(require_user_or_role("user_id", "admin"))):
          ...
    """
    allowed = {UserRole(r) for r in allowed_roles}

    def dependency(request: Request, current_user: User = Depends(get_current_user)) -> User:
        raw = request.path_params.get(user_id_param)
        if raw is None:
            raise HTTPException(status_code=500, detail=f"Missing parameter '{user_id_param}'")
        if str(current_user.id) == str(raw) or current_user.role in allowed:
            return current_user
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed")
    return dependency
