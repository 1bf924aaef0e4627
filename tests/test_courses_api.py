import pytest

from tests.helpers import auth_headers, create_course, signup


@pytest.fixture()
def instructor(client, privileged_signup):
    return signup(client, name="Ivy", email="ivy@x.com", role="instructor")


@pytest.fixture()
def admin(client, privileged_signup):
    return signup(client, name="Root", email="root@x.com", role="admin")


def test_create_course_derives_slug_and_lesson_order(client, instructor):
    course = create_course(client, instructor["accessToken"], title="JavaScript Fundamentals", lesson_count=3)
    assert course["slug"] == "javascript-fundamentals"
    assert [lesson["order"] for lesson in course["lessons"]] == [1, 2, 3]
    assert len({lesson["id"] for lesson in course["lessons"]}) == 3
    assert course["lessons"][0]["contentHtml"] == "<p>Part 1</p>"


def test_create_course_validates_fields(client, instructor):
    response = client.post(
        "/api/courses",
        json={"title": "", "price": -1, "category": "cooking", "difficulty": "beginner"},
        headers=auth_headers(instructor["accessToken"]),
    )
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"title", "price", "category", "description", "instructor"} <= fields


def test_duplicate_title_conflicts(client, instructor):
    create_course(client, instructor["accessToken"], title="Python Basics")
    response = client.post(
        "/api/courses",
        json={"title": "python  basics", "description": "again", "price": 0, "category": "programming",
              "difficulty": "beginner", "instructor": "Ivy"},
        headers=auth_headers(instructor["accessToken"]),
    )
    assert response.status_code == 400


def test_admin_may_assign_the_owning_instructor(client, admin, instructor):
    course = create_course(
        client, admin["accessToken"], title="Assigned", instructorId=instructor["user"]["id"]
    )
    assert course["instructorId"] == instructor["user"]["id"]

    response = client.delete(f"/api/courses/{course['id']}", headers=auth_headers(instructor["accessToken"]))
    assert response.status_code == 200


def test_instructor_cannot_assign_another_owner(client, admin, instructor):
    course = create_course(
        client, instructor["accessToken"], title="Mine", instructorId=admin["user"]["id"]
    )
    assert course["instructorId"] == instructor["user"]["id"]


def test_lookup_by_id_or_slug(client, instructor):
    course = create_course(client, instructor["accessToken"], title="Data Science 101", category="data-science")
    by_id = client.get(f"/api/courses/{course['id']}")
    by_slug = client.get("/api/courses/data-science-101")
    assert by_id.status_code == by_slug.status_code == 200
    assert by_id.json()["data"]["course"]["id"] == by_slug.json()["data"]["course"]["id"]
    assert client.get("/api/courses/no-such-course").status_code == 404


def test_listing_filters_search_and_pages(client, instructor):
    token = instructor["accessToken"]
    create_course(client, token, title="Python Basics")
    create_course(client, token, title="Advanced Python", difficulty="advanced")
    create_course(client, token, title="Logo Design", category="design", description="Shapes and colour")

    everything = client.get("/api/courses").json()["data"]
    assert everything["total"] == 3
    assert everything["count"] == 3

    design = client.get("/api/courses?category=design").json()["data"]
    assert [course["title"] for course in design["courses"]] == ["Logo Design"]

    advanced = client.get("/api/courses?difficulty=advanced").json()["data"]
    assert advanced["count"] == 1

    search = client.get("/api/courses?search=PYTHON").json()["data"]
    assert search["total"] == 2

    colour = client.get("/api/courses?search=colour").json()["data"]
    assert colour["total"] == 1

    paged = client.get("/api/courses?limit=2&page=2").json()["data"]
    assert paged["count"] == 1
    assert paged["pages"] == 2
    assert paged["page"] == 2


def test_listing_rejects_bad_query_values(client):
    assert client.get("/api/courses?category=cooking").status_code == 400
    assert client.get("/api/courses?limit=0").status_code == 400


def test_retitling_a_course_updates_its_slug(client, instructor):
    course = create_course(client, instructor["accessToken"], title="Old Name")
    response = client.put(
        f"/api/courses/{course['id']}",
        json={"title": "Brand New Name"},
        headers=auth_headers(instructor["accessToken"]),
    )
    updated = response.json()["data"]["course"]
    assert updated["slug"] == "brand-new-name"
    assert updated["lessons"] == course["lessons"]
    assert client.get("/api/courses/old-name").status_code == 404


def test_delete_course(client, instructor):
    course = create_course(client, instructor["accessToken"])
    headers = auth_headers(instructor["accessToken"])
    assert client.delete(f"/api/courses/{course['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/courses/{course['id']}").status_code == 404


def test_health(client):
    assert client.get("/health").json() == {"success": True, "message": "Server is running"}
