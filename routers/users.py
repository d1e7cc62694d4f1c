# User Routes

from fastapi import APIRouter, Depends, Query, Response, status
from pymongo import ReturnDocument
from pymongo.database import Database

import users
from database import get_db
from deps import check_role, get_current_user
from errors import ValidationFailure
from schemas import CreateUserRequest, UpdateMeRequest, public_user


router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
def list_users(
    role: str = None,
    include_inactive: bool = Query(False, alias="includeInactive"),
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    check_role(current_user, "admin")
    q = {"role": role} if role else {}
    found = [public_user(u) for u in users.find_users(db, q, include_inactive=include_inactive)]
    return {"status": "success", "results": len(found), "data": {"users": found}}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(payload: CreateUserRequest, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "admin")
    if users.find_user_by_email(db, payload.email):
        raise ValidationFailure("Email already registered")
    user = users.insert_user(db, payload, role=payload.role, active=payload.active)
    return {"status": "success", "data": {"user": public_user(user)}}


@router.get("/me")
def get_me(current_user=Depends(get_current_user)):
    return {"status": "success", "data": {"user": public_user(current_user)}}


@router.patch("/me")
def update_me(payload: UpdateMeRequest, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailure("Nothing to update")
    user = db["user"].find_one_and_update(
        {"_id": current_user["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return {"status": "success", "data": {"user": public_user(user)}}


@router.get("/{user_id}")
def get_user(user_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "admin")
    user = users.get_user_or_404(db, user_id)
    return {"status": "success", "data": {"user": public_user(user)}}


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "admin")
    users.delete_user(db, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
