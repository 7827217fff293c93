"""Percentage splits: validation and money distribution.

Every split group is a mapping of label -> percent and must total exactly
100. Money splits round each share to whole units and give the rounding
remainder to the last member so the parts always add back up.
"""
import math
from dataclasses import dataclass, field
from typing import Optional

SPLIT_GROUPS = {
    "salary_config": "Salary split",
    "expense_split": "Expense split",
    "tuition_pool_split": "Tuition pool split",
    "etea_pool_split": "ETEA pool split",
}

ETEA_MARKERS = ("MDCAT", "ECAT", "ETEA")


def round_half_up(value):
    return int(math.floor(value + 0.5))


def split_total(group):
    return sum(float(v) for v in group.values())


def validate_split(label, group):
    if not isinstance(group, dict) or not group:
        return f"{label} must have at least one entry"
    for key, value in group.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"{label}: '{key}' must be a number"
        if value < 0 or value > 100:
            return f"{label}: '{key}' must be between 0 and 100"
    total = split_total(group)
    if abs(total - 100) > 1e-9:
        return f"{label} must total 100%, got {total:g}%"
    return None


def validate_splits(groups):
    """Return ``{group_name: message}`` for every group that fails."""
    errors = {}
    for name, label in SPLIT_GROUPS.items():
        if name in groups:
            msg = validate_split(label, groups[name])
            if msg:
                errors[name] = msg
    return errors


def distribute(amount, split):
    funded = [k for k in split if float(split[k]) > 0]
    shares = {k: 0 for k in split}
    if not funded:
        return shares
    remaining = amount
    for key in funded[:-1]:
        shares[key] = round_half_up(amount * float(split[key]) / 100)
        remaining -= shares[key]
    shares[funded[-1]] = remaining
    return shares


def distribute_pool(amount, split):
    shares = distribute(amount, split)
    return [{"partner_key": k, "percent": split[k], "share": shares[k]} for k in split]


def expense_shares(amount, split, paid_by="academy_cash"):
    shares = distribute(amount, split)
    out = []
    for key, pct in split.items():
        if float(pct) <= 0:
            continue
        if paid_by in ("academy_cash", "joint_pool"):
            status = "n/a"
        elif paid_by == key:
            status = "paid"
        else:
            status = "unpaid"
        out.append({"partner_key": key, "percentage": pct, "amount": shares[key], "status": status})
    return out


@dataclass
class RevenueSplit:
    total_fee: float
    teacher_commission: float
    teacher_tuition: float
    pool_revenue: float
    split_type: str
    is_etea: bool
    is_partner: bool
    teacher_percentage: Optional[float] = None
    pool: list = field(default_factory=list)

    @property
    def teacher_revenue(self):
        return self.teacher_commission + self.teacher_tuition

    def to_dict(self):
        return {
            "total_fee": self.total_fee,
            "teacher_revenue": self.teacher_revenue,
            "teacher_commission": self.teacher_commission,
            "teacher_tuition": self.teacher_tuition,
            "pool_revenue": self.pool_revenue,
            "split_type": self.split_type,
            "is_etea": self.is_etea,
            "is_partner": self.is_partner,
            "teacher_percentage": self.teacher_percentage,
            "pool": self.pool,
        }


def is_etea_fee(session_type=None, grade_level=None):
    if session_type in ("etea", "mdcat"):
        return True
    grade = (grade_level or "").upper()
    return any(m in grade for m in ETEA_MARKERS)


def calculate_revenue_split(fee, teacher_role="staff", *, teacher_share=70.0,
                            partner_100_rule=True, etea_commission=3000.0,
                            session_type=None, grade_level=None, subject=None,
                            compensation_type="percentage", own_share=None,
                            tuition_pool=None, etea_pool=None):
    is_etea = is_etea_fee(session_type, grade_level)
    is_partner = teacher_role in ("owner", "partner")

    if is_etea:
        is_english = (subject or "").strip().lower() == "english"
        commission = min(float(etea_commission), float(fee))
        if is_partner and partner_100_rule:
            result = RevenueSplit(fee, commission, fee - commission, 0, "ETEA_PARTNER_100",
                                  True, True, 100.0)
        elif is_english:
            # English is on a fixed per-session salary, the fee goes to the pool
            result = RevenueSplit(fee, 0, 0, fee, "ETEA_ENGLISH_FIXED", True, is_partner, 0.0)
        else:
            result = RevenueSplit(fee, commission, 0, fee - commission, "ETEA_STAFF_COMMISSION",
                                  True, is_partner)
    elif is_partner and partner_100_rule:
        result = RevenueSplit(fee, 0, fee, 0, "PARTNER_100", False, True, 100.0)
    elif compensation_type == "fixed":
        result = RevenueSplit(fee, 0, 0, fee, "FIXED_SALARY", False, is_partner, 0.0)
    else:
        pct = float(own_share if own_share is not None else teacher_share)
        teacher_amt = round_half_up(fee * pct / 100)
        result = RevenueSplit(fee, 0, teacher_amt, fee - teacher_amt, "STAFF_SPLIT",
                              False, is_partner, pct)

    pool_split = etea_pool if is_etea else tuition_pool
    if result.pool_revenue > 0 and pool_split:
        result.pool = distribute_pool(result.pool_revenue, pool_split)
    return result


def refund_split(amount, fee_amount, teacher_share):
    """Split a refund of ``amount`` against a fee in the fee's own proportions.

    Returns ``(teacher_part, pool_part)``; the two always add up to ``amount``.
    """
    if fee_amount <= 0 or teacher_share <= 0:
        return 0, amount
    teacher_part = min(round_half_up(teacher_share * amount / fee_amount), teacher_share, amount)
    return teacher_part, amount - teacher_part
