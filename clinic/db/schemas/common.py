"""Shared literal types, patterns and validators for request/response schemas."""
import math
from typing import Literal

PHONE_PATTERN = r"^(\+593|0)[0-9]{9}$"
TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"
COLOR_PATTERN = r"^#[0-9A-F]{6}$"
NAME_PATTERN = r"^[A-Za-zÁÉÍÓÚáéíóúÑñÜü\s]+$"

Gender = Literal["MALE", "FEMALE", "OTHER"]
IdentificationType = Literal["CEDULA", "PASSPORT", "RUC"]
MaritalStatus = Literal["SINGLE", "MARRIED", "DIVORCED", "WIDOWED", "COMMON_LAW"]
BloodType = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]

AppointmentType = Literal[
    "CONSULTATION", "CLEANING", "FILLING", "EXTRACTION", "ROOT_CANAL",
    "ORTHODONTICS", "EMERGENCY", "FOLLOW_UP", "OTHER",
]
AppointmentStatus = Literal["SCHEDULED", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED", "NO_SHOW"]
RecurrenceFrequency = Literal["DAILY", "WEEKLY", "BIWEEKLY", "MONTHLY"]

DentitionType = Literal["PERMANENT", "TEMPORARY", "MIXED"]
ToothStatus = Literal[
    "HEALTHY", "CARIES", "FILLED", "MISSING", "EXTRACTED", "CROWN", "BRIDGE", "IMPLANT",
    "ROOT_CANAL", "FRACTURED", "SEALANT", "PROSTHESIS", "TO_EXTRACT",
]
SurfaceName = Literal["O", "M", "D", "V", "L", "P"]

Severity = Literal["MILD", "MODERATE", "SEVERE"]
TreatmentStatus = Literal["PLANNED", "IN_PROGRESS", "COMPLETED", "CANCELLED"]
TreatmentPlanStatus = Literal["DRAFT", "PROPOSED", "APPROVED", "REJECTED", "IN_PROGRESS", "COMPLETED"]

TransactionType = Literal["INCOME", "EXPENSE"]
PaymentMethod = Literal[
    "CASH", "CARD", "CREDIT_CARD", "DEBIT_CARD", "BANK_TRANSFER", "TRANSFER", "CHECK", "INSURANCE",
]
PaymentFrequency = Literal["WEEKLY", "BIWEEKLY", "MONTHLY"]
PaymentPlanStatus = Literal["ACTIVE", "COMPLETED", "CANCELLED"]
InstallmentStatus = Literal["PENDING", "PAID", "OVERDUE"]
ExpenseCategory = Literal[
    "RENT", "UTILITIES", "SALARIES", "SUPPLIES", "EQUIPMENT", "MAINTENANCE",
    "MARKETING", "INSURANCE", "TAXES", "OTHER",
]

FollowUpPriority = Literal["LOW", "MEDIUM", "HIGH", "URGENT"]
FollowUpStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED", "CANCELLED"]

SortOrder = Literal["asc", "desc"]

MAX_PAGE_SIZE = 100


def total_pages(total_items: int, limit: int) -> int:
    return math.ceil(total_items / limit) if limit else 0


def strip_or_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def page_payload(items, total_items: int, page: int, limit: int) -> dict:
    """Common envelope for paginated list responses."""
    return {
        "items": items,
        "total_items": total_items,
        "total_pages": total_pages(total_items, limit),
        "page": page,
        "limit": limit,
        "has_more": page * limit < total_items,
    }
