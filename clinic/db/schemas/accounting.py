import datetime as dt
import uuid
from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from .common import (
    ExpenseCategory, InstallmentStatus, PaymentFrequency, PaymentMethod, PaymentPlanStatus, TransactionType,
)


class TransactionCreate(BaseModel):
    type: TransactionType
    amount: float = Field(gt=0)
    description: str = Field(min_length=3, max_length=500)
    category: str = Field(min_length=2, max_length=100)
    payment_method: PaymentMethod = "CASH"
    date: dt.date | None = None
    patient_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    invoice_number: str | None = Field(default=None, max_length=50)


class Transaction(BaseModel):
    id: uuid.UUID
    type: TransactionType
    amount: float
    description: str
    category: str
    payment_method: str
    date: dt.date
    patient_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    invoice_number: str | None = None
    created_by: uuid.UUID
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedTransactions(BaseModel):
    items: List[Transaction]
    total_items: int
    total_pages: int
    page: int
    limit: int
    has_more: bool
    total_income: float
    total_expense: float


class PatientPaymentCreate(BaseModel):
    patient_id: uuid.UUID
    treatment_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    amount: float = Field(gt=0)
    payment_method: PaymentMethod = "CASH"
    concept: str = Field(min_length=3, max_length=200)
    date: dt.date | None = None
    notes: str | None = Field(default=None, max_length=1000)
    receipt_number: str | None = Field(default=None, max_length=50)


class PatientPayment(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    treatment_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    installment_id: uuid.UUID | None = None
    amount: float
    payment_method: str
    concept: str
    date: dt.date
    notes: str | None = None
    receipt_number: str | None = None
    created_by: uuid.UUID
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class Installment(BaseModel):
    id: uuid.UUID
    payment_plan_id: uuid.UUID
    number: int
    amount: float
    due_date: dt.date
    status: InstallmentStatus
    paid_at: dt.date | None = None
    model_config = ConfigDict(from_attributes=True)


class PaymentPlanCreate(BaseModel):
    patient_id: uuid.UUID
    treatment_id: uuid.UUID
    total_amount: float = Field(gt=0)
    total_installments: int = Field(ge=1, le=60)
    frequency: PaymentFrequency = "MONTHLY"
    first_due_date: dt.date
    notes: str | None = Field(default=None, max_length=1000)


class PaymentPlanUpdate(BaseModel):
    status: PaymentPlanStatus | None = None
    notes: str | None = Field(default=None, max_length=1000)


class PaymentPlan(BaseModel):
    id: uuid.UUID
    patient_id: uuid.UUID
    treatment_id: uuid.UUID
    total_amount: float
    paid_amount: float
    balance: float
    total_installments: int
    frequency: PaymentFrequency
    first_due_date: dt.date
    status: PaymentPlanStatus
    notes: str | None = None
    installments: List[Installment] = []
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class RecordPaymentRequest(BaseModel):
    amount: float = Field(gt=0)
    payment_method: PaymentMethod = "CASH"
    date: dt.date | None = None
    notes: str | None = Field(default=None, max_length=1000)
    receipt_number: str | None = Field(default=None, max_length=50)


class RecordPaymentResult(BaseModel):
    payment: PatientPayment
    installment: Installment
    updated_balance: float
    plan_status: PaymentPlanStatus


class ExpenseCreate(BaseModel):
    category: ExpenseCategory
    amount: float = Field(gt=0)
    description: str = Field(min_length=3, max_length=500)
    date: dt.date | None = None
    supplier: str | None = Field(default=None, max_length=200)
    invoice_number: str | None = Field(default=None, max_length=50)
    payment_method: PaymentMethod = "CASH"
    recurring: bool = False


class ExpenseUpdate(BaseModel):
    category: ExpenseCategory | None = None
    amount: float | None = Field(default=None, gt=0)
    description: str | None = Field(default=None, min_length=3, max_length=500)
    date: dt.date | None = None
    supplier: str | None = Field(default=None, max_length=200)
    invoice_number: str | None = Field(default=None, max_length=50)
    payment_method: PaymentMethod | None = None
    recurring: bool | None = None


class Expense(BaseModel):
    id: uuid.UUID
    category: ExpenseCategory
    amount: float
    description: str
    date: dt.date
    supplier: str | None = None
    invoice_number: str | None = None
    payment_method: str
    recurring: bool
    transaction_id: uuid.UUID | None = None
    created_by: uuid.UUID
    created_at: dt.datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class PaginatedExpenses(BaseModel):
    items: List[Expense]
    total_items: int
    total_pages: int
    page: int
    limit: int
    has_more: bool
    total_amount: float


class IncomeSources(BaseModel):
    patient_payments: float
    other_income: float


class MonthlyBalance(BaseModel):
    month: int
    year: int
    total_income: float
    total_expenses: float
    net_income: float
    income_sources: IncomeSources
    expenses_by_category: Dict[str, float]


class CashFlowEntry(BaseModel):
    date: dt.date
    type: TransactionType
    category: str
    description: str
    amount: float


class CashFlow(BaseModel):
    start_date: dt.date
    end_date: dt.date
    opening_balance: float
    total_income: float
    total_expenses: float
    closing_balance: float
    entries: List[CashFlowEntry]


class AccountReceivable(BaseModel):
    patient_id: uuid.UUID
    patient_name: str
    total_debt: float
    overdue_amount: float
    days_overdue: int
    payment_plan_ids: List[uuid.UUID]


class IncomeByTreatment(BaseModel):
    treatment_code: str
    treatment_name: str
    total_income: float
    number_of_treatments: int
    average_price: float


class ReceivablesSummary(BaseModel):
    total: float
    overdue: float
    accounts: int


class FinancialSummary(BaseModel):
    revenue: float
    expenses: float
    profit: float
    profit_margin: float


class FinancialReport(BaseModel):
    month: int
    year: int
    balance: MonthlyBalance
    receivables: ReceivablesSummary
    summary: FinancialSummary


class ExpenseCategoryTotal(BaseModel):
    category: ExpenseCategory
    total_amount: float
    count: int
