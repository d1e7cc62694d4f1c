import logging
from typing import Dict

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pymongo.database import Database

from database import get_db
from errors import AuthenticationError, PermissionDenied
from security import decode_access_token
from users import find_user_by_id, password_changed_after

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_user(token: str = Depends(oauth2_scheme), db: Database = Depends(get_db)) -> Dict:
    if not token:
        raise AuthenticationError("You are not logged in. Please log in to get access.")
    try:
        payload = decode_access_token(token)
        user_id = payload.get("sub")
        if user_id is None:
            raise AuthenticationError("Could not validate credentials")
    except JWTError:
        logger.warning("Rejected invalid token")
        raise AuthenticationError("Could not validate credentials")
    user = find_user_by_id(db, user_id)
    if not user:
        raise AuthenticationError("The user belonging to this token no longer exists.")
    if password_changed_after(user, payload.get("iat", 0)):
        raise AuthenticationError("Password was changed recently. Please log in again.")
    return user


def check_role(current_user: Dict, *roles: str) -> None:
    """Raise unless the authenticated user holds one of ``roles``."""
    if current_user.get("role") not in roles:
        logger.warning("User %s (%s) denied; requires %s", current_user.get("_id"), current_user.get("role"), roles)
        raise PermissionDenied("You do not have permission to perform this action")
