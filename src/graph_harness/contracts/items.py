"""
Item entity descriptor
"""

from typing import Any, Dict

from graph_harness.contracts.base import EntityDescriptor
from graph_harness.core.data_factory import UPPERCASE, DIGITS, random_company, random_price, random_string


def random_item(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Generate item input data with a unique SKU"""
    return {
        "name": f"{random_company()} Widget",
        "sku": f"SKU-{random_string(10, UPPERCASE + DIGITS)}",
        "price": random_price(),
    }


ITEM = EntityDescriptor(
    network_name="Item",
    default_selector={
        "id": True,
        "name": True,
        "sku": True,
        "price": True,
    },
    random_data=random_item,
)
