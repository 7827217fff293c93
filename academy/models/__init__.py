from ..extensions import db
from .user import User
from .academics import AcademicSession, SchoolClass
from .people import Student, Teacher
from .finance import (FeeRecord, PrintRecord, TeacherPayment, PayoutRequest, Expense, ExpenseShare,
                      Refund, DailyClosing, Settlement)
from .seating import Seat
from .settings import AcademyConfig, SessionPrice, get_config
from .timetable import TimetableEntry
from .exam import Exam, ExamAttempt
from .lecture import Lecture
from .website import WebsiteConfig, Announcement, get_website_config

__all__ = [
    "User", "AcademicSession", "SchoolClass", "Student", "Teacher",
    "FeeRecord", "PrintRecord", "TeacherPayment", "PayoutRequest", "Expense", "ExpenseShare",
    "Refund", "DailyClosing", "Settlement", "Seat",
    "AcademyConfig", "SessionPrice", "get_config", "TimetableEntry",
    "Exam", "ExamAttempt", "Lecture", "WebsiteConfig", "Announcement", "get_website_config",
]
