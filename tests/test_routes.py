# =============================================================================
# tests/test_routes.py - HTTP Layer Tests
# =============================================================================
# Exercises routing, role gating, status codes, error bodies and cache
# headers through a TestClient. Services hit the fake Supabase client.
# =============================================================================

from unittest.mock import patch

from tests.conftest import CLASS_A, GUARDIAN_ID, ORG_ID, TEACHER_ID, make_user

STUDENT_ID = "66666666-6666-6666-6666-666666666666"
THREAD_ID = "88888888-8888-8888-8888-888888888888"


class TestHealth:

    def test_health(self, api, teacher):
        body = api(teacher).get("/api/v1/health").json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"

    def test_ready(self, api, teacher, supabase):
        supabase.on("organizations", [{"id": ORG_ID}])
        body = api(teacher).get("/api/v1/health/ready").json()
        assert body["status"] == "ready"
        assert body["checks"]["database"] == "healthy"

    def test_degraded_when_database_fails(self, api, teacher, supabase):
        supabase.on("organizations", RuntimeError("connection refused"))
        assert api(teacher).get("/api/v1/health/ready").json()["status"] == "degraded"

    def test_live(self, api, teacher):
        assert api(teacher).get("/api/v1/health/live").json()["status"] == "alive"


class TestStoriesRoutes:

    def test_feed_is_cacheable(self, api, teacher, supabase):
        supabase.on("stories", [])
        response = api(teacher).get("/api/v1/stories", params={"teacherClassIds": CLASS_A})

        assert response.status_code == 200
        assert response.json() == {"stories": []}
        assert response.headers["cache-control"] == "public, s-maxage=300, stale-while-revalidate=600"

    def test_guardian_cannot_create(self, api, guardian):
        response = api(guardian).post("/api/v1/stories", json={
            "expires_at": "2099-01-01T00:00:00Z",
            "items": [{"url": "https://cdn.test/1.jpg"}],
        })

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "INSUFFICIENT_ROLE"
        assert body["details"]["user_roles"] == ["guardian"]

    def test_invalid_body_is_400(self, api, teacher):
        response = api(teacher).post("/api/v1/stories", json={"expires_at": "not-a-date"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "INVALID_REQUEST"
        assert body["errors"]


class TestAnnouncementRoutes:

    def test_latest_is_not_treated_as_an_id(self, api, teacher, supabase):
        supabase.on("announcements", [])
        response = api(teacher).get("/api/v1/announcements/latest")

        assert response.status_code == 200
        assert response.json() == {"announcements": []}
        assert not supabase.touched("announcements")

    def test_guardian_cannot_post(self, api, guardian):
        response = api(guardian).post("/api/v1/announcements", json={"title": "Hi", "body": "There"})
        assert response.status_code == 403


class TestAttendanceRoutes:

    def test_list_is_never_cached(self, api, teacher, supabase):
        supabase.on("attendance", [{"id": "a1", "student_id": STUDENT_ID, "date": "2024-01-15", "status": "present"}])
        response = api(teacher).get("/api/v1/attendance", params={"classId": CLASS_A})

        assert response.json()["total"] == 1
        assert response.headers["cache-control"] == "no-store, no-cache, must-revalidate"

    def test_guardian_cannot_record(self, api, guardian):
        response = api(guardian).post("/api/v1/attendance", json={"student_id": STUDENT_ID, "date": "2024-01-15"})
        assert response.status_code == 403


class TestHealthLogRoutes:

    def test_null_data_is_returned(self, api, principal, supabase):
        supabase.on("health_logs", [{"id": "log-1", "student_id": STUDENT_ID, "type": "nap", "data": None}])
        supabase.on("students", [])
        response = api(principal).get("/api/v1/health-logs")

        assert response.status_code == 200
        [log] = response.json()["healthLogs"]
        assert log["data"] is None
        assert log["student_name"] is None


class TestMessageRoutes:

    def test_reused_dm_returns_200(self, api, teacher):
        thread = {"id": THREAD_ID, "org_id": ORG_ID, "thread_type": "dm"}
        with patch("app.routers.messages.MessageService.create_thread", return_value=(thread, False)):
            response = api(teacher).post("/api/v1/messages", json={"recipient_id": GUARDIAN_ID})

        assert response.status_code == 200
        assert response.json()["message"]["id"] == THREAD_ID

    def test_new_thread_returns_201(self, api, teacher):
        thread = {"id": THREAD_ID, "org_id": ORG_ID, "thread_type": "dm"}
        with patch("app.routers.messages.MessageService.create_thread", return_value=(thread, True)):
            response = api(teacher).post("/api/v1/messages", json={"recipient_id": GUARDIAN_ID})
        assert response.status_code == 201

    def test_blank_item_body_is_400(self, api, teacher, supabase):
        response = api(teacher).post(f"/api/v1/messages/{THREAD_ID}/items", json={"body": "   "})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_REQUEST"
        assert not supabase.touched("message_items")

    def test_non_participant_gets_403(self, api, teacher, supabase):
        supabase.on("message_participants", None)
        response = api(teacher).get(f"/api/v1/messages/{THREAD_ID}/items")

        assert response.status_code == 403
        assert response.json()["code"] == "THREAD_ACCESS_DENIED"


class TestClassRoutes:

    def test_teacher_cannot_create_class(self, api, teacher):
        response = api(teacher).post("/api/v1/classes", json={"name": "Sunflowers"})
        assert response.status_code == 403

    def test_principal_creates_class(self, api, principal, supabase):
        supabase.on("classes", [{"id": CLASS_A, "name": "Sunflowers", "org_id": ORG_ID}])
        response = api(principal).post("/api/v1/classes", json={"name": "Sunflowers"})

        assert response.status_code == 201
        body = response.json()
        assert body["class"]["id"] == CLASS_A
        assert body["message"] == "Class created successfully"


class TestAuthRoutes:

    def test_user_context(self, api):
        user = make_user(TEACHER_ID, "teacher", "principal", active_role="principal")
        body = api(user).get("/api/v1/auth/user-context").json()

        assert body["roles"] == ["teacher", "principal"]
        assert body["active_role"] == "principal"
        assert body["org_id"] == ORG_ID

    def test_me_falls_back_to_token(self, api, teacher, supabase):
        supabase.on("users", None)
        body = api(teacher).get("/api/v1/auth/me").json()
        assert body["role"] == "teacher"
        assert body["org_id"] == ORG_ID
