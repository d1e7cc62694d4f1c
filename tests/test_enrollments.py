from bson import ObjectId


def enroll(client, headers, course):
    return client.post("/enrollments", json={"courseId": str(course["_id"])}, headers=headers)


def test_create_enrollment_starts_at_zero_progress(client, make_user, make_course, auth_headers):
    student = make_user()
    course = make_course()
    resp = enroll(client, auth_headers(student), course)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "success"
    enrollment = body["data"]["enrollment"]
    assert enrollment["progress"] == 0
    assert enrollment["paymentStatus"] == "completed"
    assert enrollment["student"] == str(student["_id"])
    assert enrollment["course"] == str(course["_id"])


def test_create_enrollment_for_missing_course(client, make_user, auth_headers):
    resp = client.post("/enrollments", json={"courseId": str(ObjectId())}, headers=auth_headers(make_user()))
    assert resp.status_code == 404
    assert resp.json() == {"status": "fail", "message": "Course not found"}


def test_create_enrollment_rejects_malformed_course_id(client, make_user, auth_headers):
    resp = client.post("/enrollments", json={"courseId": "nope"}, headers=auth_headers(make_user()))
    assert resp.status_code == 400


def test_create_enrollment_requires_login(client, make_course):
    resp = client.post("/enrollments", json={"courseId": str(make_course()["_id"])})
    assert resp.status_code == 401


def test_duplicate_enrollment_returns_existing_record(client, db, make_user, make_course, auth_headers):
    student = make_user()
    course = make_course()
    first = enroll(client, auth_headers(student), course).json()["data"]["enrollment"]

    resp = enroll(client, auth_headers(student), course)
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == "fail"
    assert body["message"] == "You are already enrolled in this course."
    assert body["data"]["enrollment"]["id"] == first["id"]
    assert db["enrollment"].count_documents({}) == 1


def test_get_all_enrollments_expands_references(client, make_user, make_course, auth_headers):
    admin = make_user(role="admin")
    student = make_user(name="Jane Student")
    course = make_course(title="Algebra")
    enroll(client, auth_headers(student), course)

    resp = client.get("/enrollments", headers=auth_headers(admin))
    assert resp.status_code == 200
    body = resp.json()
    assert body["results"] == 1
    enrollment = body["data"]["enrollments"][0]
    assert enrollment["student"]["name"] == "Jane Student"
    assert "passwordHash" not in enrollment["student"]
    assert "password_hash" not in enrollment["student"]
    assert enrollment["course"]["title"] == "Algebra"


def test_get_all_enrollments_is_admin_only(client, make_user, auth_headers):
    resp = client.get("/enrollments", headers=auth_headers(make_user()))
    assert resp.status_code == 403


def test_get_enrollment_by_id(client, make_user, make_course, auth_headers):
    student = make_user()
    created = enroll(client, auth_headers(student), make_course()).json()["data"]["enrollment"]

    resp = client.get(f"/enrollments/{created['id']}", headers=auth_headers(student))
    assert resp.status_code == 200
    assert resp.json()["data"]["enrollment"]["student"]["id"] == str(student["_id"])

    missing = client.get(f"/enrollments/{ObjectId()}", headers=auth_headers(student))
    assert missing.status_code == 404


def test_enrollments_by_user(client, make_user, make_course, auth_headers):
    student = make_user()
    enroll(client, auth_headers(student), make_course())
    enroll(client, auth_headers(student), make_course(title="Second"))

    resp = client.get(f"/enrollments/user/{student['_id']}", headers=auth_headers(student))
    assert resp.status_code == 200
    assert resp.json()["results"] == 2


def test_enrollments_by_user_without_any_is_not_found(client, make_user, auth_headers):
    student = make_user()
    resp = client.get(f"/enrollments/user/{student['_id']}", headers=auth_headers(student))
    assert resp.status_code == 404
    assert resp.json() == {"status": "fail", "message": "No enrollments found for this user"}


def test_enrollments_by_course_without_any_has_distinct_shape(client, make_user, make_course, auth_headers):
    instructor = make_user(role="instructor")
    course = make_course(instructor=instructor)
    resp = client.get(f"/enrollments/course/{course['_id']}", headers=auth_headers(instructor))
    assert resp.status_code == 404
    assert resp.json() == {
        "status": "fail",
        "message": "No enrollments found for this course",
        "results": 0,
        "data": {"enrollments": []},
    }


def test_enrollments_by_course_expands_student_only(client, make_user, make_course, auth_headers):
    instructor = make_user(role="instructor")
    course = make_course(instructor=instructor)
    enroll(client, auth_headers(make_user()), course)

    resp = client.get(f"/enrollments/course/{course['_id']}", headers=auth_headers(instructor))
    assert resp.status_code == 200
    enrollment = resp.json()["data"]["enrollments"][0]
    assert isinstance(enrollment["student"], dict)
    assert enrollment["course"] == str(course["_id"])


def test_delete_enrollment(client, make_user, make_course, auth_headers):
    admin = make_user(role="admin")
    student = make_user()
    created = enroll(client, auth_headers(student), make_course()).json()["data"]["enrollment"]

    resp = client.delete(f"/enrollments/{created['id']}", headers=auth_headers(admin))
    assert resp.status_code == 204
    assert resp.content == b""

    assert client.get(f"/enrollments/{created['id']}", headers=auth_headers(admin)).status_code == 404
    assert client.delete(f"/enrollments/{created['id']}", headers=auth_headers(admin)).status_code == 404


def test_update_progress_bounds(client, make_user, make_course, auth_headers):
    student = make_user()
    headers = auth_headers(student)
    created = enroll(client, headers, make_course()).json()["data"]["enrollment"]
    url = f"/enrollments/{created['id']}/progress"

    for bad in (-1, 101):
        resp = client.patch(url, json={"progress": bad}, headers=headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Progress must be between 0 and 100"

    for good in (0, 100):
        resp = client.patch(url, json={"progress": good}, headers=headers)
        assert resp.status_code == 200
        enrollment = resp.json()["data"]["enrollment"]
        assert enrollment["progress"] == good
        assert enrollment["course"]["title"] == "Intro to Python"


def test_update_progress_missing_enrollment(client, make_user, auth_headers):
    resp = client.patch(f"/enrollments/{ObjectId()}/progress", json={"progress": 50}, headers=auth_headers(make_user()))
    assert resp.status_code == 404


def test_update_progress_rejects_non_integer(client, make_user, make_course, auth_headers):
    student = make_user()
    created = enroll(client, auth_headers(student), make_course()).json()["data"]["enrollment"]
    resp = client.patch(
        f"/enrollments/{created['id']}/progress", json={"progress": "lots"}, headers=auth_headers(student)
    )
    assert resp.status_code == 400
    assert resp.json()["status"] == "fail"


def test_get_progress_returns_only_progress_course_and_student(client, make_user, make_course, auth_headers):
    student = make_user()
    headers = auth_headers(student)
    created = enroll(client, headers, make_course()).json()["data"]["enrollment"]
    client.patch(f"/enrollments/{created['id']}/progress", json={"progress": 40}, headers=headers)

    resp = client.get(f"/enrollments/{created['id']}/progress", headers=headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert set(data) == {"progress", "course", "student"}
    assert data["progress"] == 40
    assert data["student"]["id"] == str(student["_id"])

    assert client.get(f"/enrollments/{ObjectId()}/progress", headers=headers).status_code == 404


def test_enrollment_ids_are_case_insensitive(client, db, make_user, make_course, auth_headers):
    instructor = make_user(role="instructor")
    student = make_user()
    course = make_course(instructor=instructor, title="Algebra")
    enroll(client, auth_headers(student), course)

    upper = str(course["_id"]).upper()
    resp = client.post("/enrollments", json={"courseId": upper}, headers=auth_headers(student))
    assert resp.status_code == 400
    assert resp.json()["message"] == "You are already enrolled in this course."
    assert db["enrollment"].count_documents({}) == 1

    by_user = client.get(f"/enrollments/user/{str(student['_id']).upper()}", headers=auth_headers(student))
    assert by_user.status_code == 200
    assert by_user.json()["data"]["enrollments"][0]["course"]["title"] == "Algebra"

    by_course = client.get(f"/enrollments/course/{upper}", headers=auth_headers(instructor))
    assert by_course.status_code == 200
    assert by_course.json()["results"] == 1


def test_update_progress_limited_to_owner_or_admin(client, make_user, make_course, auth_headers):
    student = make_user()
    created = enroll(client, auth_headers(student), make_course()).json()["data"]["enrollment"]
    url = f"/enrollments/{created['id']}/progress"

    other = client.patch(url, json={"progress": 90}, headers=auth_headers(make_user()))
    assert other.status_code == 403
    assert other.json()["status"] == "fail"
    progress = client.get(url, headers=auth_headers(student)).json()["data"]["progress"]
    assert progress == 0

    admin = client.patch(url, json={"progress": 75}, headers=auth_headers(make_user(role="admin")))
    assert admin.status_code == 200
    assert admin.json()["data"]["enrollment"]["progress"] == 75
