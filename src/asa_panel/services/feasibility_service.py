"""
Feasibility Service - how many baskets the current stock can make.

Pure functions over a recipe and a snapshot of stock items: no database
access, no side effects, safe to call on every keystroke for live feedback.
The answer is advisory; the assembly transaction re-checks stock under lock.

Rules:
- Each line with quantity_required > 0 allows floor(available / required) baskets
- Lines with quantity_required == 0 impose no bound
- A line whose stock item is missing from the snapshot counts as zero stock
- The result is the minimum over bounding lines; a recipe with no bounding
  lines (including an empty recipe) yields 0
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from asa_panel.services.basket_config_service import BasketConfiguration


@dataclass
class LineFeasibility:
    """Feasibility detail for one recipe line."""

    stock_item_id: int
    item_name: Optional[str]  # None when the item no longer exists
    quantity_required: Decimal
    quantity_available: Decimal
    baskets_possible: Optional[int]  # None for lines that consume nothing

    @property
    def is_bounding(self) -> bool:
        return self.baskets_possible is not None


@dataclass
class FeasibilityResult:
    """Complete feasibility analysis for a recipe."""

    max_baskets: int
    lines: List[LineFeasibility]
    limiting_item_ids: List[int]  # lines whose bound equals max_baskets


StockSnapshot = Union[Iterable[Any], Mapping[int, Any]]


def _snapshot(items: StockSnapshot) -> Dict[int, Dict[str, Any]]:
    """
    Normalize stock input to {id: {"name", "quantity"}}.

    Accepts StockItem-like objects (``id``, ``quantity``, optional ``name``)
    or a mapping of id to quantity.
    """
    if isinstance(items, Mapping):
        return {
            item_id: {"name": None, "quantity": Decimal(str(quantity))}
            for item_id, quantity in items.items()
        }
    return {
        item.id: {
            "name": getattr(item, "name", None),
            "quantity": Decimal(str(item.quantity)),
        }
        for item in items
    }


def compute_feasibility_report(
    config: BasketConfiguration, items: StockSnapshot
) -> FeasibilityResult:
    """
    Compute per-line and overall basket feasibility.

    Args:
        config: Basket recipe
        items: Current stock as StockItem-like objects or {id: quantity}

    Returns:
        FeasibilityResult with max_baskets and per-line detail
    """
    stock = _snapshot(items)

    lines: List[LineFeasibility] = []
    for line in config.items:
        entry = stock.get(line.stock_item_id)
        available = entry["quantity"] if entry is not None else Decimal("0")
        required = Decimal(line.quantity_required)

        possible = None
        if required > 0:
            # Integer division on non-negative Decimals truncates, i.e. floors
            possible = int(max(available, Decimal("0")) // required)

        lines.append(
            LineFeasibility(
                stock_item_id=line.stock_item_id,
                item_name=entry["name"] if entry is not None else None,
                quantity_required=required,
                quantity_available=available,
                baskets_possible=possible,
            )
        )

    bounds = [lf.baskets_possible for lf in lines if lf.is_bounding]
    if not bounds:
        return FeasibilityResult(max_baskets=0, lines=lines, limiting_item_ids=[])

    max_baskets = min(bounds)
    limiting = [lf.stock_item_id for lf in lines if lf.baskets_possible == max_baskets]
    return FeasibilityResult(max_baskets=max_baskets, lines=lines, limiting_item_ids=limiting)


def compute_feasibility(config: BasketConfiguration, items: StockSnapshot) -> int:
    """
    Maximum number of baskets assemblable from ``items`` right now.

    Args:
        config: Basket recipe
        items: Current stock as StockItem-like objects or {id: quantity}

    Returns:
        Non-negative integer basket count
    """
    return compute_feasibility_report(config, items).max_baskets
