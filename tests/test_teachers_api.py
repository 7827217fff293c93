"""
API tests for teacher records, wallets, monthly payouts and payout requests.
"""

import re

import pytest

from academy.extensions import db
from academy.models import TeacherPayment


@pytest.fixture
def verified(owner, admit, teacher):
    """Teacher with 3500 verified after one collected fee and a day close."""
    sid = admit().get_json()["data"]["id"]
    res = owner.post(f"/api/students/{sid}/collect-fee", json={
        "amount": 5000, "month": "April", "teacher_id": teacher["id"]})
    assert res.status_code == 201, res.get_json()
    owner.post("/api/finance/close-day")
    return teacher


class TestTeacherRecords:
    def test_create_makes_login(self, teacher, login_as):
        assert teacher["teacher_no"] == "TCH-001"
        assert teacher["username"] == "tch-001"
        assert teacher["compensation"]["type"] == "percentage"
        t = login_as("tch-001")
        me = t.get("/api/auth/me").get_json()["data"]
        assert me["role"] == "teacher"
        assert me["teacher_id"] == teacher["id"]

    def test_teacher_sees_only_own_profile(self, owner, teacher, login_as):
        other = owner.post("/api/teachers", json={"name": "Bilal Ahmed", "subject": "Physics"})
        other_id = other.get_json()["data"]["id"]
        t = login_as("tch-001")
        assert t.get(f"/api/teachers/{teacher['id']}").status_code == 200
        assert t.get(f"/api/teachers/{other_id}").status_code == 403

    def test_invalid_compensation(self, owner):
        res = owner.post("/api/teachers", json={"name": "X", "compensation": {"type": "hourly"}})
        assert res.status_code == 400
        res = owner.post("/api/teachers", json={"name": "X", "teacher_share": 120})
        assert res.status_code == 400

    def test_delete_blocked_while_balance_owed(self, owner, verified):
        res = owner.delete(f"/api/teachers/{verified['id']}")
        assert res.status_code == 409

    def test_delete_blocked_by_payment_history(self, owner, teacher):
        owner.post("/api/teachers/payout", json={"teacher_id": teacher["id"], "amount": 100,
                                                 "month": "March", "year": 2026})
        res = owner.delete(f"/api/teachers/{teacher['id']}")
        assert res.status_code == 409
        history = owner.get(f"/api/teachers/payments/history?teacher_id={teacher['id']}")
        assert history.get_json()["data"]["count"] == 1

    def test_delete_without_history(self, owner, teacher):
        assert owner.delete(f"/api/teachers/{teacher['id']}").status_code == 200

    def test_revenue_totals(self, owner, verified):
        data = owner.get(f"/api/teachers/{verified['id']}/revenue").get_json()["data"]
        assert data["totals"] == {"collected": 5000, "teacher_share": 3500, "academy_share": 1500}


class TestWallet:
    def test_credit_then_debit(self, owner, teacher):
        tid = teacher["id"]
        res = owner.post(f"/api/teachers/{tid}/wallet/credit", json={"amount": 4000})
        assert res.get_json()["new_balance"] == 4000
        res = owner.post(f"/api/teachers/{tid}/wallet/debit", json={"amount": 1500})
        assert res.status_code == 200, res.get_json()
        body = res.get_json()
        assert body["new_balance"] == 2500
        assert re.fullmatch(r"TP-\d{6}-0001", body["data"]["voucher_id"])
        wallet = owner.get(f"/api/teachers/{tid}/wallet").get_json()
        assert wallet["balance"] == 2500
        assert wallet["data"][0]["amount"] == 1500
        expenses = owner.get("/api/expenses?category=Salaries").get_json()
        assert expenses["total_amount"] == 1500

    def test_debit_capped_at_pending(self, owner, teacher):
        tid = teacher["id"]
        owner.post(f"/api/teachers/{tid}/wallet/credit", json={"amount": 1000})
        res = owner.post(f"/api/teachers/{tid}/wallet/debit", json={"amount": 1001})
        assert res.status_code == 400
        assert res.get_json()["message"] == "Insufficient balance. Available: PKR 1000"

    def test_staff_cannot_debit(self, staff, teacher):
        res = staff.post(f"/api/teachers/{teacher['id']}/wallet/debit", json={"amount": 1})
        assert res.status_code == 403


class TestMonthlyPayout:
    def test_duplicate_month_rejected(self, owner, teacher):
        payload = {"teacher_id": teacher["id"], "amount": 30000, "month": "March", "year": 2026}
        res = owner.post("/api/teachers/payout", json=payload)
        assert res.status_code == 201, res.get_json()
        voucher = res.get_json()["data"]["voucher_id"]
        res = owner.post("/api/teachers/payout", json=payload)
        assert res.status_code == 400
        assert res.get_json()["errors"] == {"voucher_id": voucher}

    def test_history(self, owner, teacher):
        owner.post("/api/teachers/payout", json={"teacher_id": teacher["id"], "amount": 100,
                                                 "month": "March", "year": 2026})
        owner.post("/api/teachers/payout", json={"teacher_id": teacher["id"], "amount": 200,
                                                 "month": "April", "year": 2026})
        data = owner.get(f"/api/teachers/payments/history?teacher_id={teacher['id']}") \
            .get_json()["data"]
        assert data["count"] == 2
        assert data["total_paid"] == 300
        t = owner.get(f"/api/teachers/{teacher['id']}").get_json()["data"]
        assert t["total_paid"] == 300

    def test_numbers_continue_after_removed_records(self, app, owner, teacher):
        tid = teacher["id"]
        for month in ("January", "February"):
            owner.post("/api/teachers/payout", json={"teacher_id": tid, "amount": 100,
                                                     "month": month, "year": 2026})
        first_bill = owner.get("/api/expenses?category=Salaries").get_json()["data"][-1]
        assert owner.delete(f"/api/expenses/{first_bill['id']}").status_code == 200
        with app.app_context():
            db.session.delete(TeacherPayment.query.order_by(TeacherPayment.id).first())
            db.session.commit()

        res = owner.post("/api/teachers/payout", json={"teacher_id": tid, "amount": 100,
                                                       "month": "March", "year": 2026})
        assert res.status_code == 201, res.get_json()
        assert re.fullmatch(r"TP-\d{6}-0003", res.get_json()["data"]["voucher_id"])
        bills = [e["bill_number"] for e in
                 owner.get("/api/expenses?category=Salaries").get_json()["data"]]
        assert sorted(b[-4:] for b in bills) == ["0002", "0003"]

    def test_bad_month(self, owner, teacher):
        res = owner.post("/api/teachers/payout", json={"teacher_id": teacher["id"],
                                                       "amount": 100, "month": "Mar"})
        assert res.status_code == 400


class TestPayoutRequests:
    def test_request_and_approve(self, owner, verified, login_as):
        t = login_as("tch-001")
        res = t.post("/api/payroll/request", json={"teacher_id": verified["id"], "amount": 2000})
        assert res.status_code == 201, res.get_json()
        rid = res.get_json()["data"]["id"]

        res = t.post("/api/payroll/request", json={"teacher_id": verified["id"], "amount": 500})
        assert res.status_code == 400

        listing = owner.get("/api/payroll/requests").get_json()
        assert listing["summary"] == {"pending_count": 1, "pending_total": 2000}

        res = owner.post(f"/api/payroll/approve/{rid}")
        assert res.status_code == 200, res.get_json()
        data = res.get_json()["data"]
        assert data["request"]["status"] == "approved"
        assert data["expense"]["title"] == "Salary: Ayesha Khan"
        assert data["expense"]["status"] == "paid"

        teacher = owner.get(f"/api/teachers/{verified['id']}").get_json()["data"]
        assert teacher["balance"]["verified"] == 1500
        assert teacher["total_paid"] == 2000
        assert owner.post(f"/api/payroll/approve/{rid}").status_code == 400

    def test_request_over_verified_balance(self, verified, login_as):
        t = login_as("tch-001")
        res = t.post("/api/payroll/request", json={"teacher_id": verified["id"], "amount": 3501})
        assert res.status_code == 400

    def test_teacher_cannot_request_for_another(self, owner, verified, login_as):
        other = owner.post("/api/teachers", json={"name": "Bilal Ahmed"}).get_json()["data"]
        t = login_as("tch-001")
        res = t.post("/api/payroll/request", json={"teacher_id": other["id"], "amount": 1})
        assert res.status_code == 403
        assert t.get(f"/api/payroll/my-requests/{other['id']}").status_code == 403

    def test_reject_keeps_balance(self, owner, verified):
        rid = owner.post("/api/payroll/request", json={
            "teacher_id": verified["id"], "amount": 1000}).get_json()["data"]["id"]
        res = owner.post(f"/api/payroll/reject/{rid}", json={"reason": "Month not closed"})
        assert res.get_json()["data"]["status"] == "rejected"
        assert res.get_json()["data"]["notes"] == "Month not closed"
        teacher = owner.get(f"/api/teachers/{verified['id']}").get_json()["data"]
        assert teacher["balance"]["verified"] == 3500

    def test_dashboard(self, owner, verified):
        data = owner.get("/api/payroll/dashboard").get_json()["data"]
        assert data["total_teacher_liability"] == 3500
        assert [t["name"] for t in data["teachers_with_balances"]] == ["Ayesha Khan"]
