"""Tests for basket assembly.

Tests cover:
- The rice/beans scenario end to end
- All-or-nothing behavior on shortfalls and on mid-transaction failures
- Feasibility agreeing with what assembly accepts
- Concurrent assemblies never overdrawing stock
"""

import logging
import threading
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from asa_panel.services import (
    assembly_service,
    basket_config_service,
    feasibility_service,
    inventory_service,
)
from asa_panel.services.database import session_scope
from asa_panel.services.exceptions import (
    DatabaseError,
    EmptyRecipeError,
    InsufficientStockError,
    InvalidQuantityError,
)


def _quantity(item_id):
    return inventory_service.get_stock_item(item_id).quantity


def _feasible_now():
    config = basket_config_service.load_basket_configuration()
    return feasibility_service.compute_feasibility(config, inventory_service.list_stock_items())


# =============================================================================
# Successful assembly
# =============================================================================


class TestAssembleBaskets:
    """Tests for assemble_baskets() success paths."""

    def test_assemble_four(self, basic_basket, pantry):
        result = assembly_service.assemble_baskets(4)

        assert result.new_count == 4
        assert result.quantity_assembled == 4
        assert result.updated_items == {
            pantry.rice_id: Decimal("2"),
            pantry.beans_id: Decimal("0"),
        }
        assert _quantity(pantry.rice_id) == Decimal("2")
        assert _quantity(pantry.beans_id) == Decimal("0")
        assert basket_config_service.get_assembled_count() == 4

    def test_counter_accumulates(self, basic_basket):
        basket_config_service.set_assembled_count(10)

        assembly_service.assemble_baskets(1)
        result = assembly_service.assemble_baskets(2)

        assert result.new_count == 13

    def test_zero_quantity_line_is_not_consumed(self, basic_basket, pantry):
        oil = inventory_service.create_stock_item(
            {"name": "Óleo", "quantity": 0, "unit": "liter", "category": "food"}
        )
        basket_config_service.add_recipe_line(oil.id, 0)

        result = assembly_service.assemble_baskets(1)

        assert oil.id not in result.updated_items
        assert _quantity(oil.id) == Decimal("0")

    def test_fractional_recipe(self, test_db):
        milk = inventory_service.create_stock_item(
            {"name": "Leite", "quantity": "1.0", "unit": "liter", "category": "food"}
        )
        basket_config_service.add_recipe_line(milk.id, "0.1")

        assembly_service.assemble_baskets(10)

        assert _quantity(milk.id) == Decimal("0")

    def test_history_is_recorded(self, basic_basket, pantry):
        first = assembly_service.assemble_baskets(1, notes="Entrega de sábado")
        second = assembly_service.assemble_baskets(2)

        history = assembly_service.get_assembly_history()

        assert [run.id for run in history] == [second.assembly_run_id, first.assembly_run_id]
        assert history[0].counter_after == 3
        assert history[1].notes == "Entrega de sábado"
        consumed = {c["stock_item_id"]: Decimal(c["quantity"]) for c in history[0].get_consumption()}
        assert consumed == {pantry.rice_id: Decimal("4"), pantry.beans_id: Decimal("2")}

    def test_history_limit(self, basic_basket):
        for _ in range(3):
            assembly_service.assemble_baskets(1)

        assert len(assembly_service.get_assembly_history(limit=2)) == 2


# =============================================================================
# Failures
# =============================================================================


class TestAssemblyFailures:
    """Failed assemblies must leave stock and counter untouched."""

    def test_fifth_basket_cites_beans(self, basic_basket, pantry):
        assembly_service.assemble_baskets(4)

        with pytest.raises(InsufficientStockError) as exc_info:
            assembly_service.assemble_baskets(1)

        shortfalls = exc_info.value.shortfalls
        assert len(shortfalls) == 1
        assert shortfalls[0].stock_item_id == pantry.beans_id
        assert shortfalls[0].item_name == "Feijão"
        assert shortfalls[0].required == Decimal("1")
        assert shortfalls[0].available == Decimal("0")
        assert "Feijão" in str(exc_info.value)

        assert _quantity(pantry.rice_id) == Decimal("2")
        assert basket_config_service.get_assembled_count() == 4

    def test_all_shortfalls_reported(self, basic_basket, pantry):
        # 6 baskets need 12 rice (have 10) and 6 beans (have 4)
        with pytest.raises(InsufficientStockError) as exc_info:
            assembly_service.assemble_baskets(6)

        assert set(exc_info.value.stock_item_ids) == {pantry.rice_id, pantry.beans_id}

    def test_failure_leaves_state_unchanged(self, basic_basket, pantry):
        with pytest.raises(InsufficientStockError):
            assembly_service.assemble_baskets(5)

        assert _quantity(pantry.rice_id) == Decimal("10")
        assert _quantity(pantry.beans_id) == Decimal("4")
        assert basket_config_service.get_assembled_count() == 0
        assert assembly_service.get_assembly_history() == []

    @pytest.mark.parametrize("bad", [0, -1, True, 1.5, "2", None])
    def test_invalid_basket_count(self, basic_basket, pantry, bad):
        with pytest.raises(InvalidQuantityError):
            assembly_service.assemble_baskets(bad)

        assert _quantity(pantry.rice_id) == Decimal("10")

    def test_empty_recipe(self, pantry):
        with pytest.raises(EmptyRecipeError) as exc_info:
            assembly_service.assemble_baskets(1)

        assert isinstance(exc_info.value, InsufficientStockError)
        assert exc_info.value.shortfalls == []
        assert basket_config_service.get_assembled_count() == 0

    def test_recipe_with_only_zero_lines_is_empty(self, pantry):
        basket_config_service.add_recipe_line(pantry.rice_id, 0)

        with pytest.raises(EmptyRecipeError):
            assembly_service.assemble_baskets(1)

    def test_deleted_item_reported_as_missing(self, basic_basket, pantry):
        inventory_service.delete_stock_item(pantry.beans_id)

        with pytest.raises(InsufficientStockError) as exc_info:
            assembly_service.assemble_baskets(1)

        shortfall = exc_info.value.shortfalls[0]
        assert shortfall.stock_item_id == pantry.beans_id
        assert shortfall.item_name is None
        assert _quantity(pantry.rice_id) == Decimal("10")

    def test_failure_after_decrement_rolls_back(self, basic_basket, pantry, monkeypatch):
        def broken_increment(amount, session):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(basket_config_service, "increment_assembled_count", broken_increment)

        with pytest.raises(DatabaseError):
            assembly_service.assemble_baskets(2)

        assert _quantity(pantry.rice_id) == Decimal("10")
        assert _quantity(pantry.beans_id) == Decimal("4")

        monkeypatch.undo()
        result = assembly_service.assemble_baskets(2)
        assert result.new_count == 2
        assert _quantity(pantry.rice_id) == Decimal("6")


class TestAssemblyInCallerSession:
    """Assembly joined to a caller's transaction."""

    def test_failure_leaves_no_partial_writes(self, basic_basket, pantry, monkeypatch):
        def broken_increment(amount, session):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(basket_config_service, "increment_assembled_count", broken_increment)

        with session_scope() as session:
            with pytest.raises(DatabaseError):
                assembly_service.assemble_baskets(2, session=session)
            # caller carries on and commits its own work

        assert _quantity(pantry.rice_id) == Decimal("10")
        assert _quantity(pantry.beans_id) == Decimal("4")
        assert basket_config_service.get_assembled_count() == 0
        assert assembly_service.get_assembly_history() == []

    def test_shortfall_leaves_no_partial_writes(self, basic_basket, pantry):
        with session_scope() as session:
            with pytest.raises(InsufficientStockError):
                assembly_service.assemble_baskets(5, session=session)

        assert _quantity(pantry.rice_id) == Decimal("10")
        assert basket_config_service.get_assembled_count() == 0

    def test_success_commits_with_caller(self, basic_basket, pantry):
        with session_scope() as session:
            result = assembly_service.assemble_baskets(2, session=session)

        assert result.new_count == 2
        assert _quantity(pantry.rice_id) == Decimal("6")
        assert _quantity(pantry.beans_id) == Decimal("2")
        assert basket_config_service.get_assembled_count() == 2


# =============================================================================
# Feasibility agreement
# =============================================================================


class TestFeasibilityAgreement:
    """compute_feasibility() is exactly the largest assemblable count."""

    def test_k_succeeds_and_k_plus_one_fails(self, basic_basket):
        feasible = _feasible_now()
        assert feasible == 4

        with pytest.raises(InsufficientStockError):
            assembly_service.assemble_baskets(feasible + 1)

        assembly_service.assemble_baskets(feasible)
        assert _feasible_now() == 0

    def test_feasibility_after_restock(self, basic_basket, pantry):
        assembly_service.assemble_baskets(4)
        inventory_service.adjust_stock_quantity(pantry.beans_id, 3)

        # rice 2 -> 1 basket, beans 3 -> 3 baskets
        assert _feasible_now() == 1


class TestCheckCanAssemble:
    """Tests for check_can_assemble()."""

    def test_can_assemble(self, basic_basket):
        result = assembly_service.check_can_assemble(4)
        assert result == {"can_assemble": True, "missing": []}

    def test_cannot_assemble(self, basic_basket, pantry):
        result = assembly_service.check_can_assemble(5)

        assert result["can_assemble"] is False
        assert [s.stock_item_id for s in result["missing"]] == [pantry.beans_id]
        assert _quantity(pantry.beans_id) == Decimal("4")


# =============================================================================
# Logging
# =============================================================================


class TestAssemblyLogging:
    """Assembly outcomes are logged with structured context."""

    def test_success_logged(self, basic_basket, caplog):
        with caplog.at_level(logging.INFO, logger="asa_panel.services"):
            assembly_service.assemble_baskets(2)

        records = [r for r in caplog.records if r.getMessage() == "assemble_baskets: success"]
        assert len(records) == 1
        assert records[0].name == "asa_panel.services.assembly_service"
        assert records[0].quantity == 2
        assert records[0].new_count == 2

    def test_shortfall_logged_as_warning(self, basic_basket, pantry, caplog):
        with caplog.at_level(logging.INFO, logger="asa_panel.services"):
            with pytest.raises(InsufficientStockError):
                assembly_service.assemble_baskets(5)

        records = [
            r for r in caplog.records if getattr(r, "outcome", None) == "insufficient_stock"
        ]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert records[0].shortfall_item_ids == [pantry.beans_id]


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentAssembly:
    """Concurrent assemblies are serialized and never overdraw stock."""

    def test_parallel_single_baskets(self, file_db):
        rice = inventory_service.create_stock_item(
            {"name": "Arroz", "quantity": 10, "unit": "kg", "category": "food"}
        )
        beans = inventory_service.create_stock_item(
            {"name": "Feijão", "quantity": 4, "unit": "kg", "category": "food"}
        )
        basket_config_service.add_recipe_line(rice.id, 2)
        basket_config_service.add_recipe_line(beans.id, 1)

        successes = []
        failures = []
        errors = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            try:
                successes.append(assembly_service.assemble_baskets(1))
            except InsufficientStockError as e:
                failures.append(e)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert errors == []
        assert len(successes) == 4
        assert len(failures) == 4
        assert sorted(r.new_count for r in successes) == [1, 2, 3, 4]
        assert _quantity(beans.id) == Decimal("0")
        assert _quantity(rice.id) == Decimal("2")
        assert basket_config_service.get_assembled_count() == 4
