"""Installment schedule arithmetic for payment plans."""
from __future__ import annotations

import math
from datetime import date, timedelta
from typing import Any, Dict, List

FREQUENCY_DAYS = {"WEEKLY": 7, "BIWEEKLY": 14, "MONTHLY": 30}


def split_amount(total: float, count: int) -> List[float]:
    """Equal cents-truncated parts; the remainder goes on the last part."""
    if count < 1:
        raise ValueError("count must be at least 1")
    base = math.floor(round(total * 100, 6) / count) / 100
    parts = [base] * (count - 1)
    parts.append(round(total - base * (count - 1), 2))
    return parts


def build_schedule(total: float, count: int, first_due_date: date, frequency: str) -> List[Dict[str, Any]]:
    step = FREQUENCY_DAYS[frequency]
    return [
        {
            "number": index + 1,
            "amount": amount,
            "due_date": first_due_date + timedelta(days=step * index),
            "status": "PENDING",
        }
        for index, amount in enumerate(split_amount(total, count))
    ]
