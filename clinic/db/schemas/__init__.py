"""
Domain-split Pydantic schemas with a single aggregator.

Routers import ``from clinic.db import schemas`` and refer to
``schemas.Patient`` etc.; the domain modules stay importable on their own.
"""

from .common import MAX_PAGE_SIZE, page_payload, total_pages
from .users import (
    UserBase,
    UserCreate,
    UserUpdate,
    User,
    LoginRequest,
    RefreshRequest,
    ForgotPasswordRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    AuthTokens,
    AuthResponse,
    MessageResponse,
)
from .patients import (
    EmergencyContact,
    PatientBase,
    PatientCreate,
    PatientUpdate,
    Patient,
    PatientSummary,
    PaginatedPatients,
    PatientStats,
    PatientDashboardStats,
    PatientHistory,
)
from .appointments import (
    MAX_RECURRING_OCCURRENCES,
    AppointmentBase,
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentStatusUpdate,
    AppointmentCancel,
    PersonRef,
    Appointment,
    PaginatedAppointments,
    AppointmentConflict,
    AvailabilityCheck,
    AvailabilityResult,
    TimeSlot,
    AvailableSlots,
    AppointmentStats,
    RecurringAppointmentCreate,
    RecurringAppointment,
    RecurringAppointmentResult,
    WorkScheduleBase,
    WorkScheduleUpsert,
    WorkSchedule,
    BlockedTimeCreate,
    BlockedTime,
)
from .odontograms import (
    SURFACES,
    ToothSurface,
    Tooth,
    ToothUpdate,
    OdontogramCreate,
    OdontogramUpdate,
    OdontogramNewVersion,
    Odontogram,
    OdontogramSummary,
    ToothChange,
    ComparisonSummary,
    OdontogramComparison,
    OdontogramStatistics,
)
from .medical import (
    MedicalHistoryBase,
    MedicalHistoryCreate,
    MedicalHistoryUpdate,
    MedicalHistory,
    CIE10Code,
    DiagnosisCreate,
    Diagnosis,
    TreatmentCatalogItem,
    TreatmentCreate,
    TreatmentUpdate,
    Treatment,
    TreatmentPlanCreate,
    TreatmentPlanUpdate,
    TreatmentPlan,
    CompleteMedicalHistory,
)
from .accounting import (
    TransactionCreate,
    Transaction,
    PaginatedTransactions,
    PatientPaymentCreate,
    PatientPayment,
    Installment,
    PaymentPlanCreate,
    PaymentPlanUpdate,
    PaymentPlan,
    RecordPaymentRequest,
    RecordPaymentResult,
    ExpenseCreate,
    ExpenseUpdate,
    Expense,
    PaginatedExpenses,
    ExpenseCategoryTotal,
    IncomeSources,
    MonthlyBalance,
    CashFlowEntry,
    CashFlow,
    AccountReceivable,
    IncomeByTreatment,
    ReceivablesSummary,
    FinancialSummary,
    FinancialReport,
)
from .followups import (
    FollowUpBase,
    FollowUpCreate,
    FollowUpUpdate,
    FollowUp,
    PaginatedFollowUps,
    FollowUpStats,
    PatientNoteCreate,
    PatientNoteUpdate,
    PatientNote,
)
from .audits import AuditLogCreate, AuditLog
