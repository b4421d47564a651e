from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.db.core import NotFoundError
from pocket_ledger.crud import crud_account, crud_goal
from pocket_ledger.models.goal import SavingsGoalCreate, SavingsGoalUpdate

from conftest import TODAY


def new_goal(db, user, target="1200.00", current="0.00", **kwargs):
    return crud_goal.create_db_goal(db, user.db_id, SavingsGoalCreate(
        name="Vacation", target_amount=Decimal(target), current_amount=Decimal(current), **kwargs
    ))


class TestGoalCompletion:

    def test_goal_already_funded_at_creation_is_complete(self, db, user):
        assert new_goal(db, user, target="100.00", current="100.00").is_completed is True
        assert new_goal(db, user, current="99.00").is_completed is False

    def test_contribution_reaching_target_completes_goal(self, db, user):
        goal = new_goal(db, user, current="1000.00")

        goal = crud_goal.add_to_goal(db, goal.id, user.db_id, Decimal("150.00"))
        assert goal.current_amount == Decimal("1150.00")
        assert goal.is_completed is False

        goal = crud_goal.add_to_goal(db, goal.id, user.db_id, Decimal("50.00"))
        assert goal.is_completed is True

    def test_raising_current_amount_by_update_completes_goal(self, db, user):
        goal = new_goal(db, user)

        goal = crud_goal.update_db_goal(db, goal.id, user.db_id, SavingsGoalUpdate(current_amount=Decimal("1500")))

        assert goal.is_completed is True

    def test_null_name_rejected(self, db, user):
        goal = new_goal(db, user)
        with pytest.raises(ValueError, match="cannot be null"):
            crud_goal.update_db_goal(db, goal.id, user.db_id, SavingsGoalUpdate(name=None))

    def test_unknown_linked_account_rejected(self, db, user):
        with pytest.raises(ValueError, match="not found"):
            new_goal(db, user, linked_account_id=404)


class TestGoalProgress:

    def test_progress_percentage(self, db, user):
        assert crud_goal.calculate_goal_progress(new_goal(db, user, current="300.00")) == 25

    def test_progress_capped_at_one_hundred(self, db, user):
        assert crud_goal.calculate_goal_progress(new_goal(db, user, current="5000.00")) == 100

    def test_zero_target_has_no_progress(self):
        class Unfunded:
            target_amount = Decimal("0")
            current_amount = Decimal("10")

        assert crud_goal.calculate_goal_progress(Unfunded()) == 0

    def test_monthly_savings_needed(self, db, user):
        goal = new_goal(db, user, current="300.00", target_date=date(2024, 12, 15))

        assert crud_goal.calculate_monthly_savings_needed(goal, TODAY) == Decimal("150.00")
        assert crud_goal.calculate_days_remaining(goal, TODAY) == 183

    def test_past_due_goal_needs_whole_remainder(self, db, user):
        goal = new_goal(db, user, current="200.00", target_date=date(2024, 6, 1))

        assert crud_goal.calculate_monthly_savings_needed(goal, TODAY) == Decimal("1000.00")
        assert crud_goal.calculate_days_remaining(goal, TODAY) == -14

    def test_goal_without_date(self, db, user):
        goal = new_goal(db, user)

        progress = crud_goal.build_goal_progress(goal, TODAY)

        assert progress.monthly_savings_needed == Decimal("0.00")
        assert progress.days_remaining == 0
        assert progress.progress == 0
        assert progress.name == "Vacation"


class TestGoalSync:

    def test_sync_copies_linked_balance(self, db, user, savings):
        goal = new_goal(db, user, target="1000.00", linked_account_id=savings.id)

        goal = crud_goal.sync_goal_with_account(db, goal.id, user.db_id)

        assert goal.current_amount == Decimal("1000.00")
        assert goal.is_completed is True

    def test_sync_requires_link(self, db, user):
        goal = new_goal(db, user)
        with pytest.raises(ValueError, match="not linked"):
            crud_goal.sync_goal_with_account(db, goal.id, user.db_id)

    def test_sync_with_removed_account(self, db, user, savings):
        goal = new_goal(db, user, linked_account_id=savings.id)
        crud_account.delete_db_account(db, savings.id, user.db_id, hard=True)

        with pytest.raises(NotFoundError, match="Linked account"):
            crud_goal.sync_goal_with_account(db, goal.id, user.db_id)

    def test_unknown_goal(self, db, user):
        with pytest.raises(NotFoundError):
            crud_goal.add_to_goal(db, 999, user.db_id, Decimal("1"))
