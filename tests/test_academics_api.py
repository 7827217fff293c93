"""
API tests for sessions and classes, plus the seed command.
"""


class TestSessions:
    def test_duplicate_name_conflicts(self, owner, academy_class):
        res = owner.post("/api/sessions", json={"name": "Session 2026"})
        assert res.status_code == 409

    def test_dates_must_be_ordered(self, owner):
        res = owner.post("/api/sessions", json={"name": "Bad", "start_date": "2026-05-01",
                                                "end_date": "2026-04-01"})
        assert res.status_code == 400
        res = owner.post("/api/sessions", json={"name": "Bad", "start_date": "01/05/2026"})
        assert res.status_code == 400

    def test_invalid_type(self, owner):
        res = owner.post("/api/sessions", json={"name": "X", "session_type": "summer"})
        assert res.status_code == 400

    def test_delete_blocked_by_classes(self, owner, academy_class):
        sid = academy_class["session"]["id"]
        assert owner.delete(f"/api/sessions/{sid}").status_code == 409
        assert owner.delete(f"/api/classes/{academy_class['id']}").status_code == 200
        assert owner.delete(f"/api/sessions/{sid}").status_code == 200

    def test_status_filter(self, owner, academy_class):
        owner.post("/api/sessions", json={"name": "MDCAT 2027", "session_type": "mdcat"})
        body = owner.get("/api/sessions?status=upcoming").get_json()
        assert [s["name"] for s in body["data"]] == ["MDCAT 2027"]


class TestClasses:
    def test_subjects_cleaned(self, academy_class):
        assert academy_class["subjects"] == [{"name": "Biology", "fee": 0},
                                             {"name": "Physics", "fee": 3500}]

    def test_negative_fee_rejected(self, owner, academy_class):
        res = owner.put(f"/api/classes/{academy_class['id']}",
                        json={"subjects": [{"name": "Physics", "fee": -10}]})
        assert res.status_code == 400

    def test_unknown_session(self, owner):
        res = owner.post("/api/classes", json={"title": "X", "grade_level": "9th",
                                               "session_id": 404})
        assert res.status_code == 400

    def test_delete_blocked_by_students(self, owner, admit, academy_class):
        admit()
        assert owner.delete(f"/api/classes/{academy_class['id']}").status_code == 409
        detail = owner.get(f"/api/classes/{academy_class['id']}").get_json()["data"]
        assert detail["student_count"] == 1

    def test_delete_blocked_by_exams_and_lectures(self, owner, academy_class):
        cid = academy_class["id"]
        exam = owner.post("/api/exams", json={
            "title": "Weekly Test 1", "subject": "Biology", "class_id": cid,
            "questions": [{"question_text": "Unit of force", "options": ["Joule", "Newton"],
                           "correct_option_index": 1}]}).get_json()["data"]
        owner.post("/api/lectures", json={"title": "Cell Structure", "subject": "Biology",
                                          "class_id": cid,
                                          "youtube_url": "https://youtu.be/dQw4w9WgXcQ"})
        res = owner.delete(f"/api/classes/{cid}")
        assert res.status_code == 409
        assert res.get_json()["message"] == "Class still has exams, lectures"
        owner.delete(f"/api/exams/{exam['id']}")
        assert owner.delete(f"/api/classes/{cid}").get_json()["message"] == \
            "Class still has lectures"

    def test_staff_cannot_delete(self, staff, academy_class):
        assert staff.delete(f"/api/classes/{academy_class['id']}").status_code == 403


class TestSeedCommand:
    def test_seed_is_idempotent(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["seed", "--partners"])
        assert result.exit_code == 0
        assert "Nothing to do" in result.output
