"""Tests for structured service logging."""

import logging

import pytest

from asa_panel.services import inventory_service
from asa_panel.services.exceptions import InsufficientStockError
from asa_panel.services.logging_utils import get_service_logger, log_operation


def test_logger_name_uses_module_component():
    assert get_service_logger("asa_panel.services.inventory_service").name == (
        "asa_panel.services.inventory_service"
    )
    assert get_service_logger("custom").name == "asa_panel.services.custom"


def test_log_operation_carries_context(caplog):
    logger = get_service_logger("stock_check")

    with caplog.at_level(logging.DEBUG, logger="asa_panel.services.stock_check"):
        log_operation(logger, "adjust", "success", level=logging.DEBUG, stock_item_id=7)

    record = caplog.records[-1]
    assert record.getMessage() == "adjust: success"
    assert record.levelno == logging.DEBUG
    assert record.operation == "adjust"
    assert record.outcome == "success"
    assert record.stock_item_id == 7


def test_rejected_adjustment_logged_as_warning(pantry, caplog):
    with caplog.at_level(logging.DEBUG, logger="asa_panel.services"):
        with pytest.raises(InsufficientStockError):
            inventory_service.adjust_stock_quantity(pantry.beans_id, -100)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert warnings[0].name == "asa_panel.services.inventory_service"
    assert warnings[0].stock_item_id == pantry.beans_id
