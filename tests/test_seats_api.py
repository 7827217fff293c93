"""
API tests for the class seat map and seat booking.

The test config lays out 2 rows of 3 seats in each wing.
"""

import pytest


@pytest.fixture
def seats(owner, academy_class):
    def _seats(side):
        res = owner.get(f"/api/seats/{academy_class['id']}?side={side}")
        assert res.status_code == 200, res.get_json()
        return res.get_json()["data"]["seats"]
    return _seats


@pytest.fixture
def ali(admit, login_as):
    sid = admit().get_json()["data"]["id"]
    return sid, login_as("STU-0001")


class TestSeatMap:
    def test_staff_see_both_wings(self, owner, academy_class):
        data = owner.get(f"/api/seats/{academy_class['id']}").get_json()["data"]
        assert len(data["seats"]) == 12
        assert data["summary"] == {"Left": {"total": 6, "taken": 0},
                                   "Right": {"total": 6, "taken": 0}}
        assert [s["label"] for s in data["seats"][:4]] == ["L-A1", "L-A2", "L-A3", "L-B1"]

    def test_student_sees_own_wing(self, ali, academy_class):
        _, student = ali
        data = student.get(f"/api/seats/{academy_class['id']}").get_json()["data"]
        assert data["allowed_side"] == "Right"
        assert data["student_gender"] == "Male"
        assert {s["side"] for s in data["seats"]} == {"Right"}
        assert data["my_seat"] is None

    def test_other_class_hidden(self, owner, ali, academy_class):
        _, student = ali
        other = owner.post("/api/classes", json={
            "title": "9th Pre-Engineering", "grade_level": "9th",
            "session_id": academy_class["session"]["id"]}).get_json()["data"]
        assert student.get(f"/api/seats/{other['id']}").status_code == 403


class TestBooking:
    def test_book_and_rebook(self, ali, seats, academy_class):
        _, student = ali
        right = seats("Right")
        res = student.post("/api/seats/book", json={"seat_id": right[0]["id"]})
        assert res.status_code == 200, res.get_json()
        assert res.get_json()["message"] == "Seat R-A1 reserved"
        assert student.post("/api/seats/book", json={"seat_id": right[0]["id"]}).status_code == 400
        res = student.post("/api/seats/book", json={"seat_id": right[1]["id"]})
        assert res.status_code == 409
        assert res.get_json()["message"] == "Release seat R-A1 before booking another"
        mine = student.get(f"/api/seats/{academy_class['id']}").get_json()["data"]["my_seat"]
        assert mine["label"] == "R-A1"

    def test_wrong_wing(self, ali, seats):
        _, student = ali
        res = student.post("/api/seats/book", json={"seat_id": seats("Left")[0]["id"]})
        assert res.status_code == 403
        assert res.get_json()["message"] == \
            "Gender restricted zone: Male students can only book Right side seats"

    def test_taken_seat_hides_occupant(self, ali, admit, login_as, seats, academy_class):
        _, student = ali
        seat_id = seats("Right")[0]["id"]
        student.post("/api/seats/book", json={"seat_id": seat_id})
        admit(name="Bilal Khan")
        other = login_as("STU-0002")
        assert other.post("/api/seats/book", json={"seat_id": seat_id}).status_code == 409
        view = other.get(f"/api/seats/{academy_class['id']}").get_json()["data"]["seats"]
        taken = next(s for s in view if s["id"] == seat_id)
        assert taken["is_taken"] is True
        assert taken["student"] is None
        assert other.post("/api/seats/release", json={"seat_id": seat_id}).status_code == 403

    def test_release(self, ali, seats):
        _, student = ali
        seat_id = seats("Right")[2]["id"]
        student.post("/api/seats/book", json={"seat_id": seat_id})
        res = student.post("/api/seats/release", json={"seat_id": seat_id})
        assert res.get_json()["data"]["is_taken"] is False
        assert student.post("/api/seats/release", json={"seat_id": seat_id}).status_code == 400

    def test_staff_book_for_student(self, owner, admit, seats, academy_class):
        sid = admit(name="Sana Gul", gender="Female").get_json()["data"]["id"]
        seat_id = seats("Left")[4]["id"]
        assert owner.post("/api/seats/book", json={"seat_id": seat_id}).status_code == 400
        res = owner.post("/api/seats/book", json={"seat_id": seat_id, "student_id": sid})
        assert res.get_json()["data"]["student"]["name"] == "Sana Gul"
        assert res.get_json()["data"]["label"] == "L-B2"
        detail = owner.get(f"/api/students/{sid}").get_json()["data"]
        assert detail["booked_seat"] == "L-B2"

    def test_seat_in_other_class(self, owner, ali, academy_class):
        sid, _ = ali
        other = owner.post("/api/classes", json={
            "title": "9th Pre-Engineering", "grade_level": "9th",
            "session_id": academy_class["session"]["id"]}).get_json()["data"]
        seat = owner.get(f"/api/seats/{other['id']}?side=Right").get_json()["data"]["seats"][0]
        res = owner.post("/api/seats/book", json={"seat_id": seat["id"], "student_id": sid})
        assert res.status_code == 403

    def test_withdraw_frees_seat(self, owner, ali, seats, academy_class):
        sid, _ = ali
        owner.post("/api/seats/book", json={"seat_id": seats("Right")[0]["id"], "student_id": sid})
        owner.patch(f"/api/students/{sid}/withdraw")
        summary = owner.get(f"/api/seats/{academy_class['id']}").get_json()["data"]["summary"]
        assert summary["Right"]["taken"] == 0
