"""Tests for the beneficiary registry."""

from datetime import date

import pytest

from asa_panel.services import beneficiary_service
from asa_panel.services.exceptions import BeneficiaryNotFound, ValidationError


@pytest.fixture
def family(test_db):
    return beneficiary_service.create_beneficiary(
        {"name": "Família Souza", "family_size": 4, "phone": " (11) 9999-0000 "}
    )


class TestBeneficiaryCRUD:
    """Tests for create/get/update/delete."""

    def test_create(self, family):
        assert family.id is not None
        assert family.family_size == 4
        assert family.phone == "(11) 9999-0000"
        assert family.last_basket_date is None
        assert family.get_history() == []

    def test_family_size_defaults_to_one(self, test_db):
        beneficiary = beneficiary_service.create_beneficiary({"name": "Dona Maria"})
        assert beneficiary.family_size == 1

    @pytest.mark.parametrize("size", [0, -2, 2.5, "3", True])
    def test_invalid_family_size(self, test_db, size):
        with pytest.raises(ValidationError):
            beneficiary_service.create_beneficiary({"name": "X", "family_size": size})

    def test_name_required(self, test_db):
        with pytest.raises(ValidationError):
            beneficiary_service.create_beneficiary({"name": ""})

    @pytest.mark.parametrize(
        "data",
        [{"name": 5}, {"name": "Dona Maria", "phone": 123}, {"name": "X", "address": ["Rua 1"]}],
    )
    def test_non_text_fields_rejected(self, test_db, data):
        with pytest.raises(ValidationError):
            beneficiary_service.create_beneficiary(data)

        assert beneficiary_service.get_all_beneficiaries() == []

    def test_get_missing(self, test_db):
        with pytest.raises(BeneficiaryNotFound):
            beneficiary_service.get_beneficiary(3)

    def test_search_by_name(self, family):
        beneficiary_service.create_beneficiary({"name": "Família Lima"})

        found = beneficiary_service.get_all_beneficiaries(name_search="souza")
        assert [b.id for b in found] == [family.id]
        assert len(beneficiary_service.get_all_beneficiaries()) == 2

    def test_update(self, family):
        updated = beneficiary_service.update_beneficiary(
            family.id, {"family_size": 5, "address": "Rua das Flores, 10"}
        )

        assert updated.family_size == 5
        assert updated.address == "Rua das Flores, 10"
        assert updated.name == "Família Souza"

    def test_update_ignores_history(self, family):
        beneficiary_service.update_beneficiary(family.id, {"history": '[{"date": "x"}]'})
        assert beneficiary_service.get_beneficiary(family.id).get_history() == []

    def test_delete(self, family):
        assert beneficiary_service.delete_beneficiary(family.id) is True
        with pytest.raises(BeneficiaryNotFound):
            beneficiary_service.get_beneficiary(family.id)


class TestRecordBasketDelivery:
    """Tests for record_basket_delivery()."""

    def test_record_delivery(self, family):
        beneficiary_service.record_basket_delivery(family.id, "2026-03-14", note="Cesta de março")

        stored = beneficiary_service.get_beneficiary(family.id)
        assert stored.last_basket_date == date(2026, 3, 14)
        assert stored.get_history() == [{"date": "2026-03-14", "note": "Cesta de março"}]

    def test_defaults_to_today(self, family):
        beneficiary = beneficiary_service.record_basket_delivery(family.id)
        assert beneficiary.last_basket_date == date.today()

    def test_backfilled_delivery_keeps_latest_date(self, family):
        beneficiary_service.record_basket_delivery(family.id, date(2026, 4, 1))
        beneficiary_service.record_basket_delivery(family.id, date(2026, 2, 1))

        stored = beneficiary_service.get_beneficiary(family.id)
        assert stored.last_basket_date == date(2026, 4, 1)
        assert [entry["date"] for entry in stored.get_history()] == ["2026-04-01", "2026-02-01"]

    def test_invalid_date(self, family):
        with pytest.raises(ValidationError):
            beneficiary_service.record_basket_delivery(family.id, "14/03/2026")

    def test_missing_beneficiary(self, test_db):
        with pytest.raises(BeneficiaryNotFound):
            beneficiary_service.record_basket_delivery(99)
