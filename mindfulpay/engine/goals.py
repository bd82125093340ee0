"""Savings goals: creation, contributions and deletion."""

from datetime import date
from decimal import Decimal
from typing import Optional

import structlog

from mindfulpay.models.finance import Goal, GoalCategory
from mindfulpay.services.storage import (
    FinanceRepository,
    NotFoundError,
    RecordKey,
    StorageError,
)


logger = structlog.get_logger(__name__)


class GoalBook:
    """Persisted list of savings goals."""

    def __init__(self, repository: FinanceRepository):
        self._repository = repository

    async def list_goals(self) -> list[Goal]:
        return await self._repository.load_models(RecordKey.GOALS, Goal)

    async def get_goal(self, goal_id: str) -> Optional[Goal]:
        for goal in await self.list_goals():
            if goal.id == goal_id:
                return goal
        return None

    async def add_goal(
        self,
        name: str,
        target_amount: Decimal,
        category: str = GoalCategory.SAVINGS.value,
        deadline: Optional[date] = None,
        current_amount: Decimal = Decimal("0"),
    ) -> Goal:
        """
        Create a goal.

        Raises:
            pydantic.ValidationError: For an empty name, a non-positive
                target or an unknown category
            StorageError: If the goals could not be written
        """
        goal = Goal(
            name=name,
            target_amount=target_amount,
            current_amount=current_amount,
            category=category,
            deadline=deadline,
        )
        try:
            async with self._repository.editing_models(RecordKey.GOALS, Goal) as goals:
                goals.append(goal)
        except StorageError as e:
            logger.error("goal_add_failed", name=goal.name, error=str(e))
            raise
        return goal

    async def contribute(self, goal_id: str, amount: Decimal) -> Goal:
        """
        Add money to a goal.

        Raises:
            ValueError: If amount is not positive
            NotFoundError: If no goal has that id
            StorageError: If the goals could not be written
        """
        if amount <= 0:
            raise ValueError("Contribution must be a positive amount")

        try:
            async with self._repository.editing_models(RecordKey.GOALS, Goal) as goals:
                for idx, goal in enumerate(goals):
                    if goal.id == goal_id:
                        updated = Goal.model_validate(
                            {
                                **goal.model_dump(),
                                "current_amount": goal.current_amount + amount,
                            }
                        )
                        goals[idx] = updated
                        break
                else:
                    raise NotFoundError(f"Goal not found: {goal_id}")
        except NotFoundError:
            raise
        except StorageError as e:
            logger.error("goal_contribution_failed", goal_id=goal_id, error=str(e))
            raise

        logger.info(
            "goal_contribution",
            goal_id=goal_id,
            amount=str(amount),
            progress=str(updated.progress_percent),
        )
        return updated

    async def delete_goal(self, goal_id: str) -> bool:
        """Remove a goal. Returns False if no goal had that id."""
        try:
            async with self._repository.editing_models(RecordKey.GOALS, Goal) as goals:
                before = len(goals)
                goals[:] = [goal for goal in goals if goal.id != goal_id]
                removed = len(goals) < before
        except StorageError as e:
            logger.error("goal_delete_failed", goal_id=goal_id, error=str(e))
            raise
        return removed
