"""Helpers shared by the API tests."""

from __future__ import annotations

DEFAULT_PASSWORD = "secret1"


def signup(client, name="Ann", email="ann@x.com", password=DEFAULT_PASSWORD, role=None):
    payload = {"name": name, "email": email, "password": password}
    if role:
        payload["role"] = role
    response = client.post("/api/auth/signup", json=payload)
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def auth_headers(access_token: str) -> dict:
    return {"Authorization": f"Bearer {access_token}"}


def create_course(client, access_token, title="Python Basics", lesson_count=4, **overrides):
    payload = {
        "title": title,
        "description": "Learn Python from scratch",
        "price": 49.99,
        "category": "programming",
        "difficulty": "beginner",
        "instructor": "Jane Teacher",
        "lessons": [
            {"title": f"Lesson {index + 1}", "contentHtml": f"<p>Part {index + 1}</p>"}
            for index in range(lesson_count)
        ],
    }
    payload.update(overrides)
    response = client.post("/api/courses", json=payload, headers=auth_headers(access_token))
    assert response.status_code == 201, response.json()
    return response.json()["data"]["course"]


def enroll(client, access_token, course_id):
    response = client.post(
        "/api/enrollments", json={"courseId": course_id}, headers=auth_headers(access_token)
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]["enrollment"]


def set_progress(client, access_token, enrollment_id, lesson_id, completed=True):
    return client.put(
        f"/api/enrollments/{enrollment_id}/progress",
        json={"lessonId": lesson_id, "completed": completed},
        headers=auth_headers(access_token),
    )
