"""
API integration tests using FastAPI TestClient with in-memory DB.
"""
import uuid

import pytest
from fastapi.testclient import TestClient


def create_course(client: TestClient, payload: dict) -> dict:
    response = client.post("/api/courses", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def complete_lesson(client: TestClient, student_id, course_id, lesson_id, **extra):
    return client.post(
        "/api/progress/complete-lesson",
        json={
            "student_id": str(student_id),
            "course_id": course_id,
            "lesson_id": lesson_id,
            **extra,
        },
    )


def submit_quiz(client: TestClient, student_id, course_id, quiz_id, answers):
    return client.post(
        "/api/progress/complete-quiz",
        json={
            "student_id": str(student_id),
            "course_id": course_id,
            "quiz_id": quiz_id,
            "answers": answers,
        },
    )


@pytest.fixture
def course(api_client, build_course_payload):
    return create_course(api_client, build_course_payload())


@pytest.mark.integration
class TestHealthRoutes:
    def test_health(self, api_client: TestClient):
        response = api_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, api_client: TestClient):
        response = api_client.get("/")
        assert response.status_code == 200
        assert response.json()["docs"] == "/docs"


@pytest.mark.integration
class TestCourseRoutes:
    def test_create_course_returns_outline_without_answers(self, api_client, course):
        assert len(course["lessons"]) == 4
        assert [lesson["position"] for lesson in course["lessons"]] == [0, 1, 2, 3]
        question = course["quizzes"][0]["questions"][0]
        assert set(question) == {"question", "options"}

    def test_get_course(self, api_client, course):
        response = api_client.get(f"/api/courses/{course['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "Algebra Basics"

    def test_get_unknown_course(self, api_client):
        response = api_client.get(f"/api/courses/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_invalid_category_rejected(self, api_client, build_course_payload):
        response = api_client.post("/api/courses", json=build_course_payload(category="Cooking"))
        assert response.status_code == 422

    def test_correct_answer_must_index_an_option(self, api_client, build_course_payload):
        response = api_client.post("/api/courses", json=build_course_payload(quizzes=[(7,)]))
        assert response.status_code == 422

    def test_list_courses_filters(self, api_client, build_course_payload):
        create_course(api_client, build_course_payload(title="Algebra Basics"))
        create_course(api_client, build_course_payload(title="Mechanics 101", category="Physics"))
        create_course(api_client, build_course_payload(title="Hidden draft", is_published=False))

        published = api_client.get("/api/courses").json()
        assert {c["title"] for c in published} == {"Algebra Basics", "Mechanics 101"}

        physics = api_client.get("/api/courses", params={"category": "Physics"}).json()
        assert [c["title"] for c in physics] == ["Mechanics 101"]
        assert physics[0]["lesson_count"] == 4

        everything = api_client.get("/api/courses", params={"published_only": False}).json()
        assert len(everything) == 3

    def test_enroll_is_idempotent(self, api_client, course):
        student_id = str(uuid.uuid4())
        url = f"/api/courses/{course['id']}/enroll"

        first = api_client.post(url, json={"student_id": student_id})
        second = api_client.post(url, json={"student_id": student_id})

        assert first.status_code == 200
        assert first.json()["enrolled_at"] == second.json()["enrolled_at"]


@pytest.mark.integration
class TestProgressRoutes:
    def test_first_read_creates_empty_progress(self, api_client, course):
        student_id = uuid.uuid4()

        response = api_client.get(f"/api/progress/{student_id}/{course['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["overall_progress"] == 0
        assert data["lessons_completed"] == []
        assert data["badges"] == []

    def test_lesson_completion_scenario(self, api_client, course):
        student_id = uuid.uuid4()
        a, b = course["lessons"][0]["id"], course["lessons"][1]["id"]

        complete_lesson(api_client, student_id, course["id"], a, time_spent=12)
        response = complete_lesson(api_client, student_id, course["id"], b)
        assert response.json()["overall_progress"] == 50

        response = complete_lesson(api_client, student_id, course["id"], a)
        data = response.json()
        assert response.status_code == 200
        assert data["overall_progress"] == 50
        assert len(data["lessons_completed"]) == 2
        assert data["lessons_completed"][0]["time_spent"] == 12

    def test_completing_every_lesson_awards_badge(self, api_client, course):
        student_id = uuid.uuid4()
        for lesson in course["lessons"]:
            response = complete_lesson(api_client, student_id, course["id"], lesson["id"])

        data = response.json()
        assert data["overall_progress"] == 100
        assert [badge["type"] for badge in data["badges"]] == ["Course Completed"]

    def test_unknown_lesson(self, api_client, course):
        response = complete_lesson(api_client, uuid.uuid4(), course["id"], str(uuid.uuid4()))
        assert response.status_code == 404

    def test_negative_time_spent_rejected(self, api_client, course):
        response = complete_lesson(
            api_client, uuid.uuid4(), course["id"], course["lessons"][0]["id"], time_spent=-1
        )
        assert response.status_code == 422

    def test_malformed_identifier_rejected(self, api_client, course):
        response = complete_lesson(api_client, "not-a-uuid", course["id"], course["lessons"][0]["id"])
        assert response.status_code == 422

    def test_perfect_quiz_twice(self, api_client, course):
        student_id = uuid.uuid4()
        quiz_id = course["quizzes"][0]["id"]

        first = submit_quiz(api_client, student_id, course["id"], quiz_id, [0, 1, 2, 3, 0])
        second = submit_quiz(api_client, student_id, course["id"], quiz_id, [0, 1, 2, 3, 0])

        assert first.status_code == 200
        data = second.json()
        assert data["score"] == 100
        assert data["correct_answers"] == 5
        assert data["total_questions"] == 5
        assert [badge["type"] for badge in data["progress"]["badges"]] == ["Perfect Score"]
        assert len(data["progress"]["quizzes_completed"]) == 2

    def test_streak_builds_and_resets(self, api_client, course):
        student_id = uuid.uuid4()
        quiz_id = course["quizzes"][0]["id"]

        for _ in range(5):
            response = submit_quiz(api_client, student_id, course["id"], quiz_id, [0, 1, 2, 3, 1])
            assert response.json()["score"] == 80

        progress = response.json()["progress"]
        assert progress["streak_count"] == 5
        assert [badge["type"] for badge in progress["badges"]] == ["On Fire"]

        response = submit_quiz(api_client, student_id, course["id"], quiz_id, [0, 1, 2, 0, 1])
        assert response.json()["score"] == 60
        assert response.json()["progress"]["streak_count"] == 0

    def test_unknown_quiz(self, api_client, course):
        response = submit_quiz(api_client, uuid.uuid4(), course["id"], str(uuid.uuid4()), [0])
        assert response.status_code == 404
        assert response.json()["retryable"] is False


@pytest.mark.integration
class TestDashboardRoutes:
    def test_student_dashboard(self, api_client, course):
        student_id = uuid.uuid4()
        for lesson in course["lessons"][:2]:
            complete_lesson(api_client, student_id, course["id"], lesson["id"])

        response = api_client.get(f"/api/dashboard/student/{student_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["summary"]["total_courses"] == 1
        assert data["summary"]["average_progress"] == 50
        assert data["recent_activity"][0]["course_title"] == "Algebra Basics"

    def test_course_analytics(self, api_client, course):
        students = [uuid.uuid4() for _ in range(2)]
        for student_id in students:
            api_client.post(
                f"/api/courses/{course['id']}/enroll", json={"student_id": str(student_id)}
            )
        complete_lesson(api_client, students[0], course["id"], course["lessons"][0]["id"])
        submit_quiz(api_client, students[0], course["id"], course["quizzes"][0]["id"], [0, 1, 2, 3, 0])
        submit_quiz(api_client, students[1], course["id"], course["quizzes"][0]["id"], [3, 3, 3, 3, 3])

        response = api_client.get(f"/api/dashboard/course/{course['id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["analytics"]["total_students"] == 2
        assert data["lesson_completion_rates"][0]["completion_rate"] == 50
        assert data["quiz_performance"][0]["attempts"] == 2
        assert data["quiz_performance"][0]["pass_rate"] == 50

    def test_leaderboard(self, api_client, course):
        leader, runner_up = uuid.uuid4(), uuid.uuid4()
        for lesson in course["lessons"]:
            complete_lesson(api_client, leader, course["id"], lesson["id"])
        complete_lesson(api_client, runner_up, course["id"], course["lessons"][0]["id"])

        response = api_client.get("/api/dashboard/leaderboard", params={"limit": 5})

        assert response.status_code == 200
        entries = response.json()["entries"]
        assert [entry["student_id"] for entry in entries] == [str(leader), str(runner_up)]
        # 0.4 * 100 + 10 * 1 badge + 20 * 1 completed course
        assert entries[0]["score"] == 70.0
        assert entries[1]["score"] == 10.0

    def test_leaderboard_limit_validated(self, api_client):
        response = api_client.get("/api/dashboard/leaderboard", params={"limit": 0})
        assert response.status_code == 422

    def test_overview(self, api_client, course):
        complete_lesson(api_client, uuid.uuid4(), course["id"], course["lessons"][0]["id"])

        response = api_client.get("/api/dashboard/overview")

        assert response.status_code == 200
        data = response.json()
        assert data["total_courses"] == 1
        assert data["students_with_progress"] == 1
        assert data["active_students"] == 1

    def test_engagement_report(self, api_client, build_course_payload):
        algebra = create_course(api_client, build_course_payload(title="Algebra Basics"))
        mechanics = create_course(
            api_client, build_course_payload(title="Mechanics 101", category="Physics")
        )
        finisher, starter = uuid.uuid4(), uuid.uuid4()
        for student_id in (finisher, starter):
            api_client.post(
                f"/api/courses/{algebra['id']}/enroll", json={"student_id": str(student_id)}
            )
        for lesson in algebra["lessons"]:
            complete_lesson(api_client, finisher, algebra["id"], lesson["id"])
        complete_lesson(api_client, starter, algebra["id"], algebra["lessons"][0]["id"])
        complete_lesson(api_client, starter, mechanics["id"], mechanics["lessons"][0]["id"])

        response = api_client.get("/api/dashboard/reports/engagement", params={"limit": 5})

        assert response.status_code == 200
        data = response.json()
        by_category = {row["category"]: row for row in data["category_completion"]}
        assert by_category["Mathematics"]["total_enrollments"] == 2
        assert by_category["Mathematics"]["completions"] == 1
        assert by_category["Mathematics"]["completion_rate"] == 50.0
        assert by_category["Mathematics"]["average_progress"] == 62.5
        assert by_category["Physics"]["completion_rate"] == 0.0

        top = data["top_students"]
        assert [row["student_id"] for row in top] == [str(finisher), str(starter)]
        assert top[0]["total_badges"] == 1
        assert top[1]["total_courses"] == 2
        assert top[1]["average_progress"] == 25.0


@pytest.mark.integration
class TestCourseManagementRoutes:
    def test_update_details(self, api_client, course):
        response = api_client.put(
            f"/api/courses/{course['id']}", json={"title": "Algebra II", "difficulty": "Advanced"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Algebra II"
        assert data["difficulty"] == "Advanced"
        assert [lesson["id"] for lesson in data["lessons"]] == [
            lesson["id"] for lesson in course["lessons"]
        ]

    def test_update_rejects_unknown_category(self, api_client, course):
        response = api_client.put(f"/api/courses/{course['id']}", json={"category": "Cooking"})
        assert response.status_code == 422

    def test_update_unknown_course(self, api_client):
        response = api_client.put(f"/api/courses/{uuid.uuid4()}", json={"title": "Nothing here"})
        assert response.status_code == 404

    def test_update_with_foreign_lesson_id(self, api_client, course):
        response = api_client.put(
            f"/api/courses/{course['id']}",
            json={"lessons": [{"id": str(uuid.uuid4()), "title": "Stranger"}]},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_adding_lessons_recomputes_progress(self, api_client, course):
        student_id = uuid.uuid4()
        for lesson in course["lessons"]:
            complete_lesson(api_client, student_id, course["id"], lesson["id"])

        outline = [{"id": lesson["id"], "title": lesson["title"]} for lesson in course["lessons"]]
        outline += [{"title": f"Lesson {i}"} for i in range(5, 9)]
        response = api_client.put(f"/api/courses/{course['id']}", json={"lessons": outline})
        assert response.status_code == 200
        updated = response.json()
        assert len(updated["lessons"]) == 8

        progress = api_client.get(f"/api/progress/{student_id}/{course['id']}").json()
        assert progress["overall_progress"] == 50

        response = complete_lesson(api_client, student_id, course["id"], updated["lessons"][4]["id"])
        assert response.json()["overall_progress"] == 63

    def test_delete_course(self, api_client, course):
        student_id = uuid.uuid4()
        complete_lesson(api_client, student_id, course["id"], course["lessons"][0]["id"])

        response = api_client.delete(f"/api/courses/{course['id']}")

        assert response.status_code == 204
        assert api_client.get(f"/api/courses/{course['id']}").status_code == 404
        dashboard = api_client.get(f"/api/dashboard/student/{student_id}").json()
        assert dashboard["summary"]["total_courses"] == 0

    def test_bulk_publish_and_delete(self, api_client, build_course_payload):
        drafts = [
            create_course(api_client, build_course_payload(title=f"Draft {i}", is_published=False))
            for i in range(2)
        ]
        ids = [draft["id"] for draft in drafts]

        response = api_client.post(
            "/api/courses/bulk-action", json={"action": "publish", "course_ids": ids}
        )
        assert response.json() == {"action": "publish", "affected": 2}
        assert len(api_client.get("/api/courses").json()) == 2

        response = api_client.post(
            "/api/courses/bulk-action", json={"action": "delete", "course_ids": ids[:1]}
        )
        assert response.json()["affected"] == 1
        assert [c["title"] for c in api_client.get("/api/courses").json()] == ["Draft 1"]

    def test_bulk_action_validated(self, api_client, course):
        unknown = api_client.post(
            "/api/courses/bulk-action", json={"action": "archive", "course_ids": [course["id"]]}
        )
        empty = api_client.post(
            "/api/courses/bulk-action", json={"action": "delete", "course_ids": []}
        )

        assert unknown.status_code == 422
        assert empty.status_code == 422

    def test_student_courses(self, api_client, course, build_course_payload):
        create_course(api_client, build_course_payload(title="Mechanics 101", category="Physics"))
        student_id = uuid.uuid4()
        api_client.post(f"/api/courses/{course['id']}/enroll", json={"student_id": str(student_id)})
        complete_lesson(api_client, student_id, course["id"], course["lessons"][0]["id"])

        response = api_client.get(f"/api/courses/student/{student_id}")

        assert response.status_code == 200
        rows = response.json()
        assert [row["title"] for row in rows] == ["Algebra Basics"]
        assert rows[0]["overall_progress"] == 25
        assert rows[0]["lesson_count"] == 4
