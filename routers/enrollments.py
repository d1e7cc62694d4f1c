# Enrollment Routes
import logging
from typing import Dict, Iterable, List

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, get_db, get_documents, normalize_id, sanitize, to_obj_id
from deps import check_role, get_current_user
from errors import NotFoundError, PermissionDenied, ValidationFailure
from schemas import (
    CreateEnrollmentRequest,
    Enrollment,
    UpdateProgressRequest,
    public_enrollment,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])

# field on the enrollment -> referenced collection
REFERENCES = {"student": "user", "course": "course"}


def expand(db: Database, enrollments: List[Dict], fields: Iterable[str] = ("student", "course")) -> List[Dict]:
    """Replace reference ids with the referenced documents (``None`` when gone)."""
    docs = [dict(e) for e in enrollments]
    for field in fields:
        ids = {d[field] for d in docs if d.get(field)}
        if not ids:
            continue
        lookup = {
            str(ref["_id"]): sanitize(ref)
            for ref in db[REFERENCES[field]].find({"_id": {"$in": [to_obj_id(i) for i in ids]}})
        }
        for d in docs:
            d[field] = lookup.get(d.get(field))
    return docs


def expand_one(db: Database, enrollment: Dict, fields: Iterable[str] = ("student", "course")) -> Dict:
    return expand(db, [enrollment], fields)[0]


def get_enrollment_or_404(db: Database, enrollment_id: str) -> Dict:
    enrollment = db["enrollment"].find_one({"_id": to_obj_id(enrollment_id)})
    if not enrollment:
        raise NotFoundError("No enrollment found with that ID")
    return enrollment


@router.post("", status_code=status.HTTP_201_CREATED)
def create_enrollment(
    payload: CreateEnrollmentRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    user_id = str(current_user["_id"])
    course = db["course"].find_one({"_id": to_obj_id(payload.course_id)})
    if not course:
        raise NotFoundError("Course not found")
    course_id = str(course["_id"])

    # Not atomic with the insert below; see DESIGN.md
    existing = db["enrollment"].find_one({"student": user_id, "course": course_id})
    if existing:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "status": "fail",
                "message": "You are already enrolled in this course.",
                "data": {"enrollment": public_enrollment(existing)},
            },
        )

    enrollment = Enrollment(student=user_id, course=course_id, payment_status="completed", progress=0)
    doc = create_document(db, "enrollment", enrollment)
    logger.info("User %s enrolled in course %s", user_id, course_id)
    return {"status": "success", "data": {"enrollment": public_enrollment(doc)}}


@router.get("")
def get_all_enrollments(current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "admin")
    enrollments = [public_enrollment(e) for e in expand(db, db["enrollment"].find())]
    return {"status": "success", "results": len(enrollments), "data": {"enrollments": enrollments}}


@router.get("/user/{user_id}")
def get_enrollments_by_user(user_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    enrollments = get_documents(db, "enrollment", {"student": normalize_id(user_id)})
    if not enrollments:
        raise NotFoundError("No enrollments found for this user")
    enrollments = [public_enrollment(e) for e in expand(db, enrollments)]
    return {"status": "success", "results": len(enrollments), "data": {"enrollments": enrollments}}


@router.get("/course/{course_id}")
def get_enrollments_by_course(course_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "instructor", "admin")
    enrollments = get_documents(db, "enrollment", {"course": normalize_id(course_id)})
    if not enrollments:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={
                "status": "fail",
                "message": "No enrollments found for this course",
                "results": 0,
                "data": {"enrollments": []},
            },
        )
    enrollments = [public_enrollment(e) for e in expand(db, enrollments, fields=("student",))]
    return {"status": "success", "results": len(enrollments), "data": {"enrollments": enrollments}}


@router.get("/{enrollment_id}")
def get_enrollment(enrollment_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    enrollment = get_enrollment_or_404(db, enrollment_id)
    return {"status": "success", "data": {"enrollment": public_enrollment(expand_one(db, enrollment))}}


@router.delete("/{enrollment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_enrollment(enrollment_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "admin")
    enrollment = db["enrollment"].find_one_and_delete({"_id": to_obj_id(enrollment_id)})
    if not enrollment:
        raise NotFoundError("No enrollment found with that ID")
    logger.info("Enrollment %s deleted", enrollment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{enrollment_id}/progress")
def update_progress(
    enrollment_id: str,
    payload: UpdateProgressRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if payload.progress < 0 or payload.progress > 100:
        raise ValidationFailure("Progress must be between 0 and 100")
    existing = get_enrollment_or_404(db, enrollment_id)
    if current_user.get("role") != "admin" and existing["student"] != str(current_user["_id"]):
        raise PermissionDenied("You can only update progress on your own enrollments")
    enrollment = db["enrollment"].find_one_and_update(
        {"_id": existing["_id"]},
        {"$set": {"progress": payload.progress}},
        return_document=ReturnDocument.AFTER,
    )
    if not enrollment:
        raise NotFoundError("No enrollment found with that ID")
    # public_enrollment validates the stored document against the schema again
    return {"status": "success", "data": {"enrollment": public_enrollment(expand_one(db, enrollment))}}


@router.get("/{enrollment_id}/progress")
def get_progress(enrollment_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    enrollment = expand_one(db, get_enrollment_or_404(db, enrollment_id))
    public = public_enrollment(enrollment)
    return {
        "status": "success",
        "data": {
            "progress": public["progress"],
            "course": public["course"],
            "student": public["student"],
        },
    }
