# Course Routes
import logging
import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pymongo import ReturnDocument
from pymongo.database import Database

from database import create_document, get_db, normalize_id, sanitize, to_obj_id
from deps import check_role, get_current_user
from errors import NotFoundError, ValidationFailure
from schemas import Course, CreateCourseRequest, UpdateCourseRequest, public_course

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/courses", tags=["Courses"])

RELATED_LIMIT = 5


def get_course_or_404(db: Database, course_id: str) -> Dict:
    course = db["course"].find_one({"_id": to_obj_id(course_id)})
    if not course:
        raise NotFoundError("No course found with that ID")
    return course


@router.get("")
def list_courses(
    q: Optional[str] = None,
    category: Optional[str] = None,
    level: Optional[str] = None,
    sort_by: Optional[str] = Query("created_at", alias="sortBy"),
    order: Optional[str] = Query("desc"),
    db: Database = Depends(get_db),
):
    filter_q: Dict[str, Any] = {}
    if q:
        pattern = re.escape(q)
        filter_q["$or"] = [
            {"title": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"tags": {"$regex": pattern, "$options": "i"}},
        ]
    if category:
        filter_q["category"] = category
    if level:
        filter_q["level"] = level
    sort_dir = 1 if order == "asc" else -1
    courses = [public_course(c) for c in db["course"].find(filter_q).sort([(sort_by, sort_dir)])]
    return {"status": "success", "results": len(courses), "data": {"courses": courses}}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_course(payload: CreateCourseRequest, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "instructor", "admin")
    instructor_id = str(current_user["_id"])
    if payload.instructor and current_user["role"] == "admin":
        instructor = db["user"].find_one({"_id": to_obj_id(payload.instructor)})
        if not instructor or instructor.get("role") != "instructor":
            raise ValidationFailure("instructor must be a valid instructor id")
        instructor_id = str(instructor["_id"])
    course = Course(instructor=instructor_id, **payload.model_dump(exclude={"instructor"}))
    doc = create_document(db, "course", course)
    logger.info("Course %s created by %s", doc["_id"], current_user["_id"])
    return {"status": "success", "data": {"course": public_course(doc)}}


# Courses taught by a specific instructor
@router.get("/instructor/{instructor_id}")
def get_courses_by_instructor(instructor_id: str, db: Database = Depends(get_db)):
    courses = [public_course(c) for c in db["course"].find({"instructor": normalize_id(instructor_id)})]
    return {"status": "success", "results": len(courses), "data": {"courses": courses}}


@router.get("/{course_id}")
def get_course(course_id: str, db: Database = Depends(get_db)):
    course = get_course_or_404(db, course_id)
    instructor = db["user"].find_one({"_id": to_obj_id(course["instructor"])})
    if instructor:
        course["instructor"] = sanitize(instructor)
    return {"status": "success", "data": {"course": public_course(course)}}


@router.patch("/{course_id}")
def update_course(
    course_id: str,
    payload: UpdateCourseRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    check_role(current_user, "instructor", "admin")
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailure("Nothing to update")
    course = db["course"].find_one_and_update(
        {"_id": to_obj_id(course_id)},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not course:
        raise NotFoundError("No course found with that ID")
    return {"status": "success", "data": {"course": public_course(course)}}


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: str, current_user=Depends(get_current_user), db: Database = Depends(get_db)):
    check_role(current_user, "instructor", "admin")
    res = db["course"].delete_one({"_id": to_obj_id(course_id)})
    if res.deleted_count == 0:
        raise NotFoundError("No course found with that ID")
    logger.info("Course %s deleted by %s", course_id, current_user["_id"])
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{course_id}/related")
def get_related_courses(course_id: str, db: Database = Depends(get_db)):
    """Courses sharing the category or any tag of the given course."""
    course = get_course_or_404(db, course_id)
    criteria = []
    if course.get("category"):
        criteria.append({"category": course["category"]})
    if course.get("tags"):
        criteria.append({"tags": {"$in": course["tags"]}})
    related = []
    if criteria:
        cursor = db["course"].find({"_id": {"$ne": course["_id"]}, "$or": criteria}).limit(RELATED_LIMIT)
        related = [public_course(c) for c in cursor]
    return {"status": "success", "results": len(related), "data": {"courses": related}}
