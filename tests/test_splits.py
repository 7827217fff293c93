"""
Unit tests for percentage splits and revenue distribution.
"""

import pytest

from academy.services.splits import (
    calculate_revenue_split, distribute, distribute_pool, expense_shares, is_etea_fee,
    refund_split, round_half_up, validate_split, validate_splits,
)

TUITION = {"owner": 50, "partner_a": 30, "partner_b": 20}
ETEA = {"owner": 40, "partner_a": 30, "partner_b": 30}


class TestValidateSplits:
    def test_valid_group(self):
        assert validate_split("Expense split", {"owner": 40, "partner_a": 30, "partner_b": 30}) is None

    def test_total_must_be_100(self):
        msg = validate_split("Expense split", {"owner": 40, "partner_a": 30, "partner_b": 20})
        assert msg == "Expense split must total 100%, got 90%"

    def test_rejects_out_of_range(self):
        msg = validate_split("Tuition pool split", {"owner": 120, "partner_a": -20})
        assert "between 0 and 100" in msg

    def test_rejects_non_numbers(self):
        assert "must be a number" in validate_split("Salary split", {"teacher_share": "70"})

    def test_reports_each_failing_group(self):
        errors = validate_splits({
            "salary_config": {"teacher_share": 70, "academy_share": 20},
            "expense_split": {"owner": 40, "partner_a": 30, "partner_b": 30},
            "etea_pool_split": {"owner": 50, "partner_a": 60},
        })
        assert set(errors) == {"salary_config", "etea_pool_split"}
        assert errors["salary_config"] == "Salary split must total 100%, got 90%"


class TestDistribute:
    def test_rounds_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.4) == 2

    def test_shares_always_sum_to_amount(self):
        shares = distribute(999, TUITION)
        assert shares == {"owner": 500, "partner_a": 300, "partner_b": 199}
        assert sum(shares.values()) == 999

    def test_zero_percent_partner_gets_nothing(self):
        shares = distribute(101, {"owner": 50, "partner_a": 50, "partner_b": 0})
        assert shares == {"owner": 51, "partner_a": 50, "partner_b": 0}

    def test_pool_rows(self):
        rows = distribute_pool(1500, TUITION)
        assert [r["share"] for r in rows] == [750, 450, 300]
        assert rows[0]["partner_key"] == "owner"


class TestExpenseShares:
    def test_academy_cash_has_no_debt(self):
        shares = expense_shares(10000, {"owner": 40, "partner_a": 30, "partner_b": 30})
        assert [s["status"] for s in shares] == ["n/a", "n/a", "n/a"]
        assert [s["amount"] for s in shares] == [4000, 3000, 3000]

    def test_partner_payer_is_owed_by_others(self):
        shares = expense_shares(10000, {"owner": 40, "partner_a": 30, "partner_b": 30},
                                paid_by="partner_a")
        by_key = {s["partner_key"]: s["status"] for s in shares}
        assert by_key == {"owner": "unpaid", "partner_a": "paid", "partner_b": "unpaid"}

    def test_skips_zero_percent_partners(self):
        shares = expense_shares(500, {"owner": 100, "partner_a": 0})
        assert len(shares) == 1
        assert shares[0]["amount"] == 500


class TestRevenueSplit:
    def _split(self, fee, role="staff", **kwargs):
        kwargs.setdefault("tuition_pool", TUITION)
        kwargs.setdefault("etea_pool", ETEA)
        return calculate_revenue_split(fee, role, **kwargs)

    def test_staff_percentage(self):
        r = self._split(5000)
        assert r.split_type == "STAFF_SPLIT"
        assert r.teacher_revenue == 3500
        assert r.pool_revenue == 1500
        assert [p["share"] for p in r.pool] == [750, 450, 300]

    def test_teacher_own_share_overrides_default(self):
        r = self._split(5000, own_share=60)
        assert r.teacher_revenue == 3000
        assert r.teacher_percentage == 60

    def test_partner_keeps_everything(self):
        r = self._split(5000, "partner")
        assert r.split_type == "PARTNER_100"
        assert r.teacher_revenue == 5000
        assert r.pool_revenue == 0
        assert r.pool == []

    def test_partner_without_rule_splits_like_staff(self):
        r = self._split(5000, "owner", partner_100_rule=False)
        assert r.split_type == "STAFF_SPLIT"
        assert r.is_partner

    def test_fixed_salary_sends_all_to_pool(self):
        r = self._split(5000, compensation_type="fixed")
        assert r.split_type == "FIXED_SALARY"
        assert r.teacher_revenue == 0
        assert r.pool_revenue == 5000

    def test_etea_staff_gets_commission(self):
        r = self._split(10000, session_type="etea", subject="Chemistry")
        assert r.split_type == "ETEA_STAFF_COMMISSION"
        assert r.teacher_commission == 3000
        assert r.pool_revenue == 7000
        assert [p["share"] for p in r.pool] == [2800, 2100, 2100]

    def test_etea_english_goes_to_pool(self):
        r = self._split(10000, session_type="mdcat", subject="English")
        assert r.split_type == "ETEA_ENGLISH_FIXED"
        assert r.teacher_revenue == 0
        assert r.pool_revenue == 10000

    def test_etea_partner(self):
        r = self._split(10000, "owner", session_type="etea")
        assert r.split_type == "ETEA_PARTNER_100"
        assert r.teacher_commission == 3000
        assert r.teacher_tuition == 7000
        assert r.teacher_revenue == 10000

    def test_commission_capped_at_fee(self):
        r = self._split(2000, session_type="etea", subject="Physics")
        assert r.teacher_commission == 2000
        assert r.pool_revenue == 0

    @pytest.mark.parametrize("session_type,grade,expected", [
        ("regular", "10th", False),
        ("regular", "MDCAT Prep", True),
        (None, "ecat", True),
        ("etea", None, True),
    ])
    def test_etea_detection(self, session_type, grade, expected):
        assert is_etea_fee(session_type, grade) is expected


class TestRefundSplit:
    def test_full_refund_reverses_recorded_split(self):
        assert refund_split(5000, 5000, 3500) == (3500, 1500)

    def test_partial_refund_is_proportional(self):
        assert refund_split(1000, 5000, 3500) == (700, 300)

    def test_rounds_half_up(self):
        assert refund_split(1, 3, 1) == (0, 1)
        assert refund_split(3, 6, 1) == (1, 2)

    def test_pool_only_fee(self):
        assert refund_split(2000, 5000, 0) == (0, 2000)
