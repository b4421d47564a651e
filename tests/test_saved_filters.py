from datetime import date
from decimal import Decimal

import pytest

from pocket_ledger.db.core import NotFoundError
from pocket_ledger.crud import crud_saved_filter, crud_transaction
from pocket_ledger.models.saved_filter import SavedFilterCreate, SavedFilterUpdate
from pocket_ledger.models.transaction import TransactionCreate, TransactionFilter


@pytest.fixture
def ledger(db, user, checking, savings):
    def new(account_id, amount, payee, category, on):
        return TransactionCreate(
            account_id=account_id, transaction_date=on, amount=Decimal(amount), payee=payee, category=category,
        )
    return crud_transaction.bulk_create_transactions(db, user.db_id, [
        new(checking.id, "-45.10", "Fresh Market", "Groceries", date(2024, 5, 3)),
        new(checking.id, "-120.00", "Warehouse Club", "Groceries", date(2024, 6, 4)),
        new(checking.id, "-12.00", "Cinema", "Entertainment", date(2024, 6, 5)),
        new(savings.id, "3.20", "Bank", "Investments", date(2024, 6, 2)),
    ])


def save(db, user, name, is_favorite=False, **criteria):
    return crud_saved_filter.create_db_saved_filter(db, user.db_id, SavedFilterCreate(
        name=name, filters=TransactionFilter(**criteria), is_favorite=is_favorite,
    ))


class TestSavedFilterStorage:

    def test_criteria_survive_a_round_trip(self, db, user, checking):
        saved = save(db, user, "Big grocery runs", account_ids=[checking.id], categories=["Groceries"],
                     date_from=date(2024, 6, 1), amount_max=Decimal("-100.00"))

        assert saved.filter_criteria == {
            "account_ids": [checking.id], "categories": ["Groceries"],
            "date_from": "2024-06-01", "amount_max": "-100.00",
        }
        criteria = crud_saved_filter.read_filter_criteria(saved)
        assert criteria.date_from == date(2024, 6, 1)
        assert criteria.amount_max == Decimal("-100.00")
        assert criteria.search is None

    def test_listing_is_by_name_and_favorites_narrow_it(self, db, user):
        save(db, user, "Weekend", is_favorite=True)
        save(db, user, "Amazon", search="amazon")
        save(db, user, "Groceries", is_favorite=True, categories=["Groceries"])

        everything = crud_saved_filter.read_db_saved_filters(db, user.db_id)
        favorites = crud_saved_filter.read_db_saved_filters(db, user.db_id, favorites_only=True)

        assert [f.name for f in everything] == ["Amazon", "Groceries", "Weekend"]
        assert [f.name for f in favorites] == ["Groceries", "Weekend"]

    def test_duplicate_name_rejected(self, db, user):
        save(db, user, "Dining")
        with pytest.raises(ValueError, match="already exists"):
            save(db, user, "Dining", search="cafe")

    def test_blank_name_rejected_by_model(self):
        with pytest.raises(ValueError):
            SavedFilterCreate(name="   ")


class TestSavedFilterUpdates:

    def test_partial_update_keeps_criteria(self, db, user):
        saved = save(db, user, "Coffee", search="cafe")

        updated = crud_saved_filter.update_db_saved_filter(db, saved.id, user.db_id, SavedFilterUpdate(name="Coffee shops"))

        assert updated.name == "Coffee shops"
        assert updated.filter_criteria == {"search": "cafe"}

    def test_new_criteria_replace_old(self, db, user):
        saved = save(db, user, "Coffee", search="cafe", reconciled=False)

        updated = crud_saved_filter.update_db_saved_filter(db, saved.id, user.db_id, SavedFilterUpdate(
            filters=TransactionFilter(categories=["Dining"]),
        ))

        assert updated.filter_criteria == {"categories": ["Dining"]}

    def test_rename_onto_existing_name_rejected(self, db, user):
        save(db, user, "Dining")
        other = save(db, user, "Travel")

        with pytest.raises(ValueError, match="'Dining' already exists"):
            crud_saved_filter.update_db_saved_filter(db, other.id, user.db_id, SavedFilterUpdate(name="Dining"))

    def test_toggle_favorite_flips_each_time(self, db, user):
        saved = save(db, user, "Bills")

        assert crud_saved_filter.toggle_filter_favorite(db, saved.id, user.db_id).is_favorite is True
        assert crud_saved_filter.toggle_filter_favorite(db, saved.id, user.db_id).is_favorite is False

    def test_null_flag_rejected(self, db, user):
        saved = save(db, user, "Bills")
        with pytest.raises(ValueError, match="cannot be null"):
            crud_saved_filter.update_db_saved_filter(db, saved.id, user.db_id, SavedFilterUpdate(is_favorite=None))

    def test_unknown_filter(self, db, user):
        with pytest.raises(NotFoundError):
            crud_saved_filter.delete_db_saved_filter(db, 404, user.db_id)
        with pytest.raises(NotFoundError):
            crud_saved_filter.toggle_filter_favorite(db, 404, user.db_id)


class TestApplySavedFilter:

    def test_matches_live_query(self, db, user, checking, ledger):
        saved = save(db, user, "June groceries", account_ids=[checking.id], categories=["Groceries"],
                     date_from=date(2024, 6, 1), date_to=date(2024, 6, 30))

        found = crud_saved_filter.apply_saved_filter(db, saved.id, user.db_id)

        assert [t.payee for t in found] == ["Warehouse Club"]

    def test_empty_criteria_lists_everything(self, db, user, ledger):
        saved = save(db, user, "All")
        assert len(crud_saved_filter.apply_saved_filter(db, saved.id, user.db_id)) == 4


class TestSavedFilterApi:

    def test_create_list_apply_delete(self, client, checking, ledger):
        created = client.post("/saved-filters/", json={
            "name": "Groceries", "filters": {"categories": ["Groceries"], "amount_max": "-50.00"},
        })
        assert created.status_code == 201, created.text
        body = created.json()
        assert body["filters"]["categories"] == ["Groceries"]
        assert body["is_favorite"] is False

        transactions = client.get(f"/saved-filters/{body['id']}/transactions").json()
        assert [t["payee"] for t in transactions] == ["Warehouse Club"]

        starred = client.post(f"/saved-filters/{body['id']}/favorite").json()
        assert starred["is_favorite"] is True
        assert [f["name"] for f in client.get("/saved-filters/", params={"favorites_only": True}).json()] == [
            "Groceries"
        ]

        assert client.delete(f"/saved-filters/{body['id']}").status_code == 204
        assert client.get(f"/saved-filters/{body['id']}").status_code == 404

    def test_duplicate_name_is_bad_request(self, client):
        assert client.post("/saved-filters/", json={"name": "Dining"}).status_code == 201
        assert client.post("/saved-filters/", json={"name": "Dining"}).status_code == 400

    def test_unknown_filter_transactions(self, client):
        assert client.get("/saved-filters/999/transactions").status_code == 404
