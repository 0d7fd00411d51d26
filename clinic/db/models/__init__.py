"""
Domain-split SQLAlchemy models.

Exposes `Base`, `now_utc` and all ORM classes from a single import path.
"""

from .base import Base, MONEY, now_utc  # re-export

# Domain models
from .users import User
from .patients import Patient
from .appointments import Appointment, WorkSchedule, BlockedTime, RecurringAppointment
from .odontograms import Odontogram
from .medical import MedicalHistory, CIE10Code, Diagnosis, TreatmentCatalog, Treatment, TreatmentPlan
from .accounting import Transaction, PatientPayment, PaymentPlan, Installment, Expense
from .followups import FollowUp, PatientNote
from .audit import AuditLog

__all__ = [
    # base
    "Base",
    "MONEY",
    "now_utc",
    # users
    "User",
    # patients
    "Patient",
    # scheduling
    "Appointment",
    "WorkSchedule",
    "BlockedTime",
    "RecurringAppointment",
    # clinical
    "Odontogram",
    "MedicalHistory",
    "CIE10Code",
    "Diagnosis",
    "TreatmentCatalog",
    "Treatment",
    "TreatmentPlan",
    # accounting
    "Transaction",
    "PatientPayment",
    "PaymentPlan",
    "Installment",
    "Expense",
    # follow-ups
    "FollowUp",
    "PatientNote",
    # audit
    "AuditLog",
]
