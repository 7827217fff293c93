"""
API tests for video lectures and the student classroom.
"""

import pytest

URL = "https://youtu.be/dQw4w9WgXcQ"


@pytest.fixture
def lecture(owner, academy_class):
    def _lecture(client=owner, **fields):
        payload = {"title": "Cell Structure", "subject": "Biology",
                   "class_id": academy_class["id"], "youtube_url": URL}
        payload.update(fields)
        res = client.post("/api/lectures", json=payload)
        assert res.status_code == 201, res.get_json()
        return res.get_json()["data"]
    return _lecture


class TestLectures:
    def test_validate_url(self, owner):
        data = owner.post("/api/lectures/validate-url", json={"url": URL}).get_json()["data"]
        assert data["valid"] is True
        assert data["youtube_id"] == "dQw4w9WgXcQ"
        res = owner.post("/api/lectures/validate-url", json={"url": "https://vimeo.com/1"})
        assert res.status_code == 200
        assert res.get_json()["data"]["valid"] is False

    def test_create_derives_thumbnail(self, lecture):
        lec = lecture()
        assert lec["youtube_id"] == "dQw4w9WgXcQ"
        assert lec["thumbnail_url"].endswith("/dQw4w9WgXcQ/hqdefault.jpg")

    def test_invalid_link(self, owner, academy_class):
        res = owner.post("/api/lectures", json={"title": "T", "subject": "Biology",
                                                "class_id": academy_class["id"],
                                                "youtube_url": "https://example.com/v"})
        assert res.status_code == 400
        assert res.get_json()["errors"] == {"youtube_url": "invalid"}

    def test_teacher_edits_only_own(self, owner, lecture, teacher, login_as):
        t = login_as("tch-001")
        mine = lecture(client=t, title="Genetics")
        theirs = lecture()
        assert t.put(f"/api/lectures/{mine['id']}", json={"is_locked": True}).status_code == 200
        assert t.delete(f"/api/lectures/{theirs['id']}").status_code == 403
        own = t.get("/api/lectures/my-lectures").get_json()["data"]
        assert [lec["title"] for lec in own] == ["Genetics"]
        assert owner.get("/api/lectures/my-lectures").get_json()["count"] == 2


class TestClassroom:
    def test_locked_lectures_hide_link(self, lecture, admit, login_as):
        lecture()
        lecture(title="Past Paper Discussion", is_locked=True)
        admit()
        student = login_as("STU-0001")
        body = student.get("/api/lectures/my-classroom").get_json()
        assert body["count"] == 2
        assert body["subjects"] == ["Biology"]
        locked = next(lec for lec in body["data"] if lec["is_locked"])
        assert locked["youtube_url"] is None

    def test_view_counter(self, owner, lecture, admit, login_as):
        open_lec = lecture()
        locked = lecture(title="Locked", is_locked=True)
        admit()
        student = login_as("STU-0001")
        res = student.post(f"/api/student-portal/videos/{open_lec['id']}/view")
        assert res.get_json()["data"]["view_count"] == 1
        assert student.post(f"/api/lectures/{locked['id']}/view").status_code == 403
        videos = student.get("/api/student-portal/videos").get_json()
        assert videos["count"] == 2

    def test_students_cannot_list_all(self, admit, login_as):
        admit()
        student = login_as("STU-0001")
        assert student.get("/api/lectures").status_code == 403
