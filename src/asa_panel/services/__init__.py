"""Services package - Business logic layer for the ASA donation panel.

Architecture:
- Services: Stateless functions organized by domain
- Transactions: Managed via session_scope(); every public function takes an
  optional session so callers can compose one transaction
- Exceptions: Consistent error handling via the ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- inventory_service: Pantry stock ledger (CRUD, signed adjustments, low stock)
- basket_config_service: Basket recipe and assembled-basket counter
- feasibility_service: Pure basket feasibility calculation
- assembly_service: Atomic basket assembly and its audit trail
- beneficiary_service: Registry of households and their deliveries
- delivery_event_service: Delivery calendar

Infrastructure:
- database: Session management and database utilities
- exceptions: Custom exception classes for service layer errors
- logging_utils: Structured operation logging
"""

from . import (
    database,
    inventory_service,
    basket_config_service,
    feasibility_service,
    assembly_service,
    beneficiary_service,
    delivery_event_service,
)

from .assembly_service import AssemblyResult, assemble_baskets, check_can_assemble
from .basket_config_service import (
    BasketConfiguration,
    BasketRecipeLine,
    get_assembled_count,
    load_basket_configuration,
    save_basket_configuration,
    set_assembled_count,
)
from .feasibility_service import (
    FeasibilityResult,
    compute_feasibility,
    compute_feasibility_report,
)
from .inventory_service import (
    adjust_stock_quantity,
    apply_delta,
    get_stock_item,
    list_stock_items,
)

__all__ = [
    # Modules
    "database",
    "inventory_service",
    "basket_config_service",
    "feasibility_service",
    "assembly_service",
    "beneficiary_service",
    "delivery_event_service",
    # Persistence operations
    "list_stock_items",
    "get_stock_item",
    "adjust_stock_quantity",
    "apply_delta",
    "load_basket_configuration",
    "save_basket_configuration",
    "get_assembled_count",
    "set_assembled_count",
    "BasketConfiguration",
    "BasketRecipeLine",
    # UI operations
    "compute_feasibility",
    "compute_feasibility_report",
    "FeasibilityResult",
    "assemble_baskets",
    "check_can_assemble",
    "AssemblyResult",
]
