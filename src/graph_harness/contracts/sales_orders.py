"""
Sales order entity descriptor

A sales order references a customer, a site and an item. References cannot be
generated randomly, so callers pass customerId/siteId/itemId as overrides.
"""

from typing import Any, Dict

from graph_harness.contracts.base import EntityDescriptor
from graph_harness.core.data_factory import random_int, random_sentence


def random_sales_order(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Generate sales order input data (without references)"""
    return {
        "quantity": random_int(1, 10),
        "note": random_sentence(),
    }


SALES_ORDER = EntityDescriptor(
    network_name="SalesOrder",
    default_selector={
        "id": True,
        "quantity": True,
        "status": True,
        "customer": {"id": True, "name": True},
        "site": {"id": True},
        "item": {"id": True, "price": True},
    },
    random_data=random_sales_order,
    depends_on=("Customer", "Site", "Item"),
)
