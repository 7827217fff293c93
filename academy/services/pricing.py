"""Admission fee resolution.

Precedence, highest first:

1. a configured session price (> 0); with the custom-fee override on, the
   custom fee is charged and the gap to the session price is the discount;
2. an explicit custom fee;
3. the sum of the selected subjects' fees, where a class subject without a
   fee falls back to the academy's default fee for that subject name;
4. whatever total the caller posted.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class FeeQuote:
    total_fee: float
    discount: float
    session_rate: Optional[float]
    source: str   # session|session_custom|custom|subjects|manual


def session_discount(session_price, custom_fee):
    return max(0.0, float(session_price) - float(custom_fee))


def subject_fees(class_subjects, default_fees):
    defaults = {str(s.get("name", "")).strip().lower(): float(s.get("fee") or 0)
                for s in default_fees or []}
    out = []
    for s in class_subjects or []:
        if isinstance(s, str):
            name, fee = s, 0
        else:
            name, fee = s.get("name", ""), s.get("fee") or 0
        if not fee:
            fee = defaults.get(str(name).strip().lower(), 0)
        out.append({"name": name, "fee": float(fee)})
    return out


def subject_total(class_subjects, default_fees, selected):
    chosen = {str(n).strip().lower() for n in selected or []}
    return sum(s["fee"] for s in subject_fees(class_subjects, default_fees)
               if str(s["name"]).strip().lower() in chosen)


def resolve_fee(session_price=None, custom_fee=None, custom_mode=False,
                class_subjects=None, default_fees=None, selected_subjects=None,
                posted_total=None) -> FeeQuote:
    if session_price and session_price > 0:
        if custom_mode and custom_fee is not None:
            return FeeQuote(float(custom_fee), session_discount(session_price, custom_fee),
                            float(session_price), "session_custom")
        return FeeQuote(float(session_price), 0.0, float(session_price), "session")

    if custom_fee is not None:
        return FeeQuote(float(custom_fee), 0.0, None, "custom")

    if selected_subjects:
        total = subject_total(class_subjects, default_fees, selected_subjects)
        if total > 0:
            return FeeQuote(total, 0.0, None, "subjects")

    return FeeQuote(float(posted_total or 0), 0.0, None, "manual")


def fee_status(paid, total):
    paid = paid or 0
    total = total or 0
    if total > 0 and paid >= total:
        return "paid"
    if paid > 0:
        return "partial"
    return "unpaid"


def seat_side(gender):
    """Female students sit in the left wing, everyone else on the right."""
    return "Left" if str(gender or "").strip().lower() == "female" else "Right"


def seat_prefix(gender):
    return seat_side(gender)[0] + "-"
