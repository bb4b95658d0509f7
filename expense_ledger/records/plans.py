"""
Monthly Plan Store

Income and savings target per (user, month). A plan belongs to its
month, so a closed month's plan is frozen along with its expenses.
"""

from typing import Any, Optional, Union

from expense_ledger.engine.closing import ClosingEngine
from expense_ledger.models.ledger import MonthlyPlanInput, MonthlyPlanRecord
from expense_ledger.months import utc_now
from expense_ledger.services.storage import PlanStorageInterface
from expense_ledger.validation import parse_month_value, parse_plan_input


class MonthlyPlanStore:
    """Upsert-style plan storage with month immutability enforced."""

    def __init__(
        self,
        storage: PlanStorageInterface,
        closing_engine: ClosingEngine,
    ):
        self._storage = storage
        self._closing = closing_engine

    async def get(self, user_id: str, month: str) -> Optional[MonthlyPlanRecord]:
        return await self._storage.get_plan(user_id, parse_month_value(month))

    async def upsert(
        self,
        user_id: str,
        payload: Union[MonthlyPlanInput, dict[str, Any]],
    ) -> MonthlyPlanRecord:
        """
        Create the month's plan, or replace its figures if one exists.

        An existing plan keeps its id and created_at.

        Raises:
            ValidationError: If income or savings are out of range
            ImmutableMonthError: If the month is closed
        """
        data = parse_plan_input(payload)
        await self._closing.assert_editable(user_id, data.month)

        existing = await self._storage.get_plan(user_id, data.month)
        if existing is None:
            plan = MonthlyPlanRecord(
                user_id=user_id,
                month=data.month,
                income_amount=data.income_amount,
                savings_target=data.savings_target,
                notes=data.notes,
            )
        else:
            plan = existing.model_copy(update={
                "income_amount": data.income_amount,
                "savings_target": data.savings_target,
                "notes": data.notes,
                "updated_at": utc_now(),
            })

        return await self._storage.save_plan(plan)

    async def list(self, user_id: str) -> list[MonthlyPlanRecord]:
        return await self._storage.list_plans(user_id)
