import asyncio

import pytest
from bson import ObjectId

from crud.enrollment import EnrollmentCRUD
from utils.errors import Conflict
from tests.helpers import auth_headers, create_course, enroll, set_progress, signup


@pytest.fixture()
def instructor(client, privileged_signup):
    return signup(client, name="Ivy", email="ivy@x.com", role="instructor")


@pytest.fixture()
def admin(client, privileged_signup):
    return signup(client, name="Root", email="root@x.com", role="admin")


@pytest.fixture()
def student(client):
    return signup(client, name="Ann", email="ann@x.com")


@pytest.fixture()
def course(client, instructor):
    return create_course(client, instructor["accessToken"], lesson_count=4)


def test_enrolling_starts_at_zero(client, student, course):
    enrollment = enroll(client, student["accessToken"], course["id"])
    assert enrollment["userId"] == student["user"]["id"]
    assert enrollment["courseId"] == course["id"]
    assert enrollment["progress"] == {}
    assert enrollment["progressPercentage"] == 0
    assert enrollment["completedAt"] is None


def test_enroll_requires_course_id(client, student):
    response = client.post("/api/enrollments", json={}, headers=auth_headers(student["accessToken"]))
    assert response.status_code == 400
    assert response.json()["message"] == "Please provide courseId"


def test_enroll_rejects_malformed_and_unknown_courses(client, student):
    headers = auth_headers(student["accessToken"])
    malformed = client.post("/api/enrollments", json={"courseId": "xyz"}, headers=headers)
    assert malformed.status_code == 400
    assert malformed.json()["message"] == "Invalid ID format"

    unknown = client.post(
        "/api/enrollments", json={"courseId": "64b7f0c2a1b2c3d4e5f60718"}, headers=headers
    )
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "Course not found"


def test_second_enrollment_conflicts(client, student, course):
    enroll(client, student["accessToken"], course["id"])
    response = client.post(
        "/api/enrollments",
        json={"courseId": course["id"]},
        headers=auth_headers(student["accessToken"]),
    )
    assert response.status_code == 409
    assert response.json()["message"] == "Already enrolled in this course"


def test_unique_index_backs_up_the_duplicate_check(client, db, student, course):
    crud = EnrollmentCRUD(db)
    asyncio.run(crud.create_enrollment(student["user"]["id"], course["id"]))
    with pytest.raises(Conflict) as exc:
        asyncio.run(crud.create_enrollment(student["user"]["id"], course["id"]))
    assert exc.value.status_code == 409

    count = asyncio.run(db.enrollments.count_documents({
        "user_id": ObjectId(student["user"]["id"]),
        "course_id": ObjectId(course["id"]),
    }))
    assert count == 1


def test_progress_halfway_through_a_four_lesson_course(client, student, course):
    token = student["accessToken"]
    enrollment = enroll(client, token, course["id"])
    lessons = [lesson["id"] for lesson in course["lessons"]]

    set_progress(client, token, enrollment["id"], lessons[0])
    response = set_progress(client, token, enrollment["id"], lessons[1])

    assert response.status_code == 200
    updated = response.json()["data"]["enrollment"]
    assert updated["progressPercentage"] == 50
    assert updated["completedAt"] is None
    assert updated["progress"] == {lessons[0]: True, lessons[1]: True}


def test_completing_every_lesson_stamps_completion_and_unchecking_clears_it(client, student, course):
    token = student["accessToken"]
    enrollment = enroll(client, token, course["id"])
    lessons = [lesson["id"] for lesson in course["lessons"]]

    for lesson_id in lessons:
        response = set_progress(client, token, enrollment["id"], lesson_id)
    completed = response.json()["data"]["enrollment"]
    assert completed["progressPercentage"] == 100
    assert completed["completedAt"] is not None

    response = set_progress(client, token, enrollment["id"], lessons[2], completed=False)
    reopened = response.json()["data"]["enrollment"]
    assert reopened["progressPercentage"] == 75
    assert reopened["completedAt"] is None


def test_unknown_lesson_is_not_found(client, student, course):
    token = student["accessToken"]
    enrollment = enroll(client, token, course["id"])
    response = set_progress(client, token, enrollment["id"], "64b7f0c2a1b2c3d4e5f60718")
    assert response.status_code == 404
    assert response.json()["message"] == "Lesson not found in this course"


def test_progress_requires_lesson_and_boolean_status(client, student, course):
    token = student["accessToken"]
    enrollment = enroll(client, token, course["id"])
    url = f"/api/enrollments/{enrollment['id']}/progress"

    missing = client.put(url, json={"lessonId": course["lessons"][0]["id"]}, headers=auth_headers(token))
    assert missing.status_code == 400
    assert missing.json()["message"] == "Please provide lessonId and completed status"

    not_boolean = client.put(
        url,
        json={"lessonId": course["lessons"][0]["id"], "completed": "yes"},
        headers=auth_headers(token),
    )
    assert not_boolean.status_code == 400


def test_unknown_enrollment_is_not_found(client, student):
    response = set_progress(client, student["accessToken"], "64b7f0c2a1b2c3d4e5f60718", "lesson")
    assert response.status_code == 404
    assert response.json()["message"] == "Enrollment not found"


def test_only_the_enrolled_user_updates_progress(client, student, admin, course):
    enrollment = enroll(client, student["accessToken"], course["id"])
    intruder = signup(client, name="Bob", email="bob@x.com")
    lesson_id = course["lessons"][0]["id"]

    for token in (intruder["accessToken"], admin["accessToken"]):
        response = set_progress(client, token, enrollment["id"], lesson_id)
        assert response.status_code == 403
        assert response.json()["message"] == "Not authorized to update this enrollment"


def test_removed_lessons_no_longer_count(client, student, instructor, course):
    token = student["accessToken"]
    enrollment = enroll(client, token, course["id"])
    lessons = course["lessons"]
    set_progress(client, token, enrollment["id"], lessons[0]["id"])
    set_progress(client, token, enrollment["id"], lessons[1]["id"])

    # Keep lessons 2 and 3 only, then tick one of them
    kept = [{"id": lesson["id"], "title": lesson["title"]} for lesson in lessons[2:]]
    response = client.put(
        f"/api/courses/{course['id']}",
        json={"lessons": kept},
        headers=auth_headers(instructor["accessToken"]),
    )
    assert response.status_code == 200

    response = set_progress(client, token, enrollment["id"], lessons[2]["id"])
    assert response.json()["data"]["enrollment"]["progressPercentage"] == 50


def test_my_enrollments_embed_course_summary(client, student, course):
    enroll(client, student["accessToken"], course["id"])
    response = client.get("/api/enrollments/me", headers=auth_headers(student["accessToken"]))
    data = response.json()["data"]
    assert data["count"] == 1
    embedded = data["enrollments"][0]["course"]
    assert embedded["title"] == "Python Basics"
    assert embedded["lessonCount"] == 4
    assert "lessons" not in embedded


def test_admin_lists_and_filters_all_enrollments(client, student, admin, instructor, course):
    other_course = create_course(client, instructor["accessToken"], title="Design 101", category="design")
    bob = signup(client, name="Bob", email="bob@x.com")
    enroll(client, student["accessToken"], course["id"])
    enroll(client, bob["accessToken"], course["id"])
    enroll(client, bob["accessToken"], other_course["id"])
    headers = auth_headers(admin["accessToken"])

    everything = client.get("/api/enrollments/all", headers=headers).json()["data"]
    assert everything["count"] == 3
    first = everything["enrollments"][0]
    assert set(first["user"]) == {"id", "name", "email"}
    assert set(first["course"]) == {"id", "title"}

    by_course = client.get(f"/api/enrollments/all?courseId={course['id']}", headers=headers)
    assert by_course.json()["data"]["count"] == 2

    by_user = client.get(f"/api/enrollments/all?userId={bob['user']['id']}", headers=headers)
    assert by_user.json()["data"]["count"] == 2

    bad_filter = client.get("/api/enrollments/all?userId=nope", headers=headers)
    assert bad_filter.status_code == 400


def test_course_roster_for_owner_admin_and_others(client, student, admin, instructor, course):
    enroll(client, student["accessToken"], course["id"])
    url = f"/api/enrollments/course/{course['id']}"

    for token in (instructor["accessToken"], admin["accessToken"]):
        response = client.get(url, headers=auth_headers(token))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["count"] == 1
        assert data["enrollments"][0]["user"]["email"] == "ann@x.com"

    other = signup(client, name="Olga", email="olga@x.com", role="instructor")
    assert client.get(url, headers=auth_headers(other["accessToken"])).status_code == 403
    assert client.get(url, headers=auth_headers(student["accessToken"])).status_code == 403


def test_roster_for_missing_course_is_not_found(client, admin):
    response = client.get(
        "/api/enrollments/course/64b7f0c2a1b2c3d4e5f60718", headers=auth_headers(admin["accessToken"])
    )
    assert response.status_code == 404
