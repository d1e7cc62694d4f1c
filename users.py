"""
User data access.

Lifecycle rules that a document mapper would run as hooks are explicit
functions here:

- ``build_user_document`` hashes the password and drops the confirmation
  field before anything is persisted.
- ``find_users`` only returns active accounts unless ``include_inactive`` is
  passed. Single-document lookups are never scoped.
- Reset tokens and validation numbers are stored as sha256 hashes with an
  expiry; the raw value is returned to the caller for out-of-band delivery.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.database import Database

from database import to_obj_id
from errors import AuthenticationError, NotFoundError, ValidationFailure
from schemas import SignupRequest, User
from security import (
    as_utc,
    generate_reset_token,
    generate_validation_number,
    hash_password,
    sha256_hex,
    verify_password,
)

logger = logging.getLogger(__name__)

COLLECTION = "user"


def build_user_document(payload: SignupRequest, role: str = "student", active: bool = False) -> Dict[str, Any]:
    data = payload.model_dump(exclude={"password", "confirm_password"})
    data.pop("role", None)
    data.pop("active", None)
    return User(
        **data,
        password_hash=hash_password(payload.password),
        role=role,
        active=active,
    ).model_dump()


def insert_user(db: Database, payload: SignupRequest, role: str = "student", active: bool = False) -> Dict[str, Any]:
    doc = build_user_document(payload, role=role, active=active)
    res = db[COLLECTION].insert_one(doc)
    doc["_id"] = res.inserted_id
    logger.info("Created %s account %s", role, doc["email"])
    return doc


def user_filter(query: Optional[Dict[str, Any]] = None, include_inactive: bool = False) -> Dict[str, Any]:
    q = dict(query or {})
    if not include_inactive:
        q["active"] = True
    return q


def find_users(db: Database, query: Optional[Dict[str, Any]] = None, include_inactive: bool = False) -> List[Dict]:
    return list(db[COLLECTION].find(user_filter(query, include_inactive)))


def find_user_by_id(db: Database, user_id: Any) -> Optional[Dict]:
    return db[COLLECTION].find_one({"_id": to_obj_id(user_id)})


def find_user_by_email(db: Database, email: str) -> Optional[Dict]:
    return db[COLLECTION].find_one({"email": email.lower()})


def get_user_or_404(db: Database, user_id: Any) -> Dict:
    user = find_user_by_id(db, user_id)
    if not user:
        raise NotFoundError("No user found with that ID")
    return user


def compare_password(candidate: str, user: Dict) -> bool:
    return verify_password(candidate, user.get("password_hash", ""))


def password_changed_after(user: Dict, token_iat: int) -> bool:
    """True when the password was changed after a token issued at ``token_iat``."""
    changed_at = as_utc(user.get("password_changed_at"))
    if not changed_at:
        return False
    return token_iat < int(changed_at.timestamp())


def set_password(db: Database, user: Dict, password: str) -> Dict:
    return db[COLLECTION].find_one_and_update(
        {"_id": user["_id"]},
        {
            "$set": {
                "password_hash": hash_password(password),
                "password_changed_at": datetime.now(timezone.utc),
            },
            "$unset": {"password_reset_token": "", "password_reset_expires": ""},
        },
        return_document=ReturnDocument.AFTER,
    )


def create_password_reset_token(db: Database, user: Dict) -> str:
    raw, hashed, expires = generate_reset_token()
    db[COLLECTION].update_one(
        {"_id": user["_id"]},
        {"$set": {"password_reset_token": hashed, "password_reset_expires": expires}},
    )
    return raw


def reset_password_with_token(db: Database, token: str, password: str) -> Dict:
    user = db[COLLECTION].find_one({"password_reset_token": sha256_hex(token)})
    expires = as_utc(user.get("password_reset_expires")) if user else None
    if not user or not expires or expires < datetime.now(timezone.utc):
        raise ValidationFailure("Token is invalid or has expired")
    return set_password(db, user, password)


def create_validation_number(db: Database, user: Dict) -> str:
    code, hashed, expires = generate_validation_number()
    db[COLLECTION].update_one(
        {"_id": user["_id"]},
        {
            "$set": {
                "active": False,
                "encrypted_validation_number": hashed,
                "validation_number_expires_at": expires,
            }
        },
    )
    return code


def verify_validation_number(db: Database, email: str, code: str) -> Dict:
    user = find_user_by_email(db, email)
    if not user or user.get("encrypted_validation_number") != sha256_hex(code):
        raise AuthenticationError("Invalid validation code")
    expires = as_utc(user.get("validation_number_expires_at"))
    if not expires or expires < datetime.now(timezone.utc):
        raise AuthenticationError("Validation code has expired")
    return db[COLLECTION].find_one_and_update(
        {"_id": user["_id"]},
        {
            "$set": {"active": True},
            "$unset": {"encrypted_validation_number": "", "validation_number_expires_at": ""},
        },
        return_document=ReturnDocument.AFTER,
    )


def delete_user(db: Database, user_id: Any) -> None:
    res = db[COLLECTION].delete_one({"_id": to_obj_id(user_id)})
    if res.deleted_count == 0:
        raise NotFoundError("No user found with that ID")
    logger.info("Deleted user %s", user_id)
