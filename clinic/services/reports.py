"""
Financial reports computed from the transaction ledger and payment plans.
"""
from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from clinic.db import schemas
from clinic.db.repositories import accounting as accounting_repo
from clinic.db.repositories import patients as patient_repo
from clinic.services.payments import PATIENT_INCOME_CATEGORIES


def month_bounds(month: int, year: int):
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def monthly_balance(self, month: int, year: int) -> schemas.MonthlyBalance:
        start, end = month_bounds(month, year)
        income = expenses = patient_income = 0.0
        by_category: Dict[str, float] = defaultdict(float)
        for row_type, category, amount in accounting_repo.transaction_totals(self.db, start, end):
            if row_type == "INCOME":
                income += amount
                if category in PATIENT_INCOME_CATEGORIES:
                    patient_income += amount
            else:
                expenses += amount
                by_category[category] += amount

        return schemas.MonthlyBalance(
            month=month,
            year=year,
            total_income=round(income, 2),
            total_expenses=round(expenses, 2),
            net_income=round(income - expenses, 2),
            income_sources=schemas.IncomeSources(
                patient_payments=round(patient_income, 2),
                other_income=round(income - patient_income, 2),
            ),
            expenses_by_category={key: round(value, 2) for key, value in sorted(by_category.items())},
        )

    def cash_flow(self, start: date, end: date) -> schemas.CashFlow:
        before = accounting_repo.sum_by_type_before(self.db, start)
        opening = before.get("INCOME", 0.0) - before.get("EXPENSE", 0.0)
        entries: List[schemas.CashFlowEntry] = []
        income = expenses = 0.0
        for tx in accounting_repo.transactions_between(self.db, start, end):
            if tx.type == "INCOME":
                income += tx.amount
            else:
                expenses += tx.amount
            entries.append(schemas.CashFlowEntry(
                date=tx.date, type=tx.type, category=tx.category, description=tx.description, amount=tx.amount
            ))
        return schemas.CashFlow(
            start_date=start,
            end_date=end,
            opening_balance=round(opening, 2),
            total_income=round(income, 2),
            total_expenses=round(expenses, 2),
            closing_balance=round(opening + income - expenses, 2),
            entries=entries,
        )

    def accounts_receivable(self, today: Optional[date] = None) -> List[schemas.AccountReceivable]:
        today = today or date.today()
        accounts: Dict = {}
        for plan in accounting_repo.active_plans_with_balance(self.db):
            account = accounts.get(plan.patient_id)
            if account is None:
                patient = patient_repo.get_patient(self.db, plan.patient_id, include_deleted=True)
                account = accounts[plan.patient_id] = {
                    "patient_id": plan.patient_id,
                    "patient_name": patient.full_name if patient else "",
                    "total_debt": 0.0,
                    "overdue_amount": 0.0,
                    "days_overdue": 0,
                    "payment_plan_ids": [],
                }
            account["total_debt"] += plan.balance
            account["payment_plan_ids"].append(plan.id)
            for installment in plan.installments:
                if installment.status != "PAID" and installment.due_date < today:
                    account["overdue_amount"] += installment.amount
                    account["days_overdue"] = max(account["days_overdue"], (today - installment.due_date).days)

        result = [
            schemas.AccountReceivable(
                **{**account, "total_debt": round(account["total_debt"], 2), "overdue_amount": round(account["overdue_amount"], 2)}
            )
            for account in accounts.values()
        ]
        return sorted(result, key=lambda a: a.total_debt, reverse=True)

    def income_by_treatment(
        self, *, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> List[schemas.IncomeByTreatment]:
        rows = accounting_repo.completed_treatment_income(self.db, date_from=date_from, date_to=date_to)
        items = [
            schemas.IncomeByTreatment(
                treatment_code=code,
                treatment_name=name,
                total_income=round(total, 2),
                number_of_treatments=count,
                average_price=round(total / count, 2) if count else 0.0,
            )
            for code, name, total, count in rows
        ]
        return sorted(items, key=lambda item: item.total_income, reverse=True)

    def financial_report(self, month: int, year: int) -> schemas.FinancialReport:
        balance = self.monthly_balance(month, year)
        receivables = self.accounts_receivable()
        revenue, spent = balance.total_income, balance.total_expenses
        profit = round(revenue - spent, 2)
        return schemas.FinancialReport(
            month=month,
            year=year,
            balance=balance,
            receivables=schemas.ReceivablesSummary(
                total=round(sum(a.total_debt for a in receivables), 2),
                overdue=round(sum(a.overdue_amount for a in receivables), 2),
                accounts=len(receivables),
            ),
            summary=schemas.FinancialSummary(
                revenue=revenue,
                expenses=spent,
                profit=profit,
                profit_margin=round(profit / revenue * 100, 2) if revenue else 0.0,
            ),
        )


__all__ = ["ReportService", "month_bounds"]
