from graph_harness.contracts.base import EntityDescriptor
from graph_harness.contracts.customers import CUSTOMER
from graph_harness.contracts.items import ITEM
from graph_harness.contracts.sales_orders import SALES_ORDER
from graph_harness.contracts.sites import SITE
from graph_harness.contracts.registry import (
    get_all_descriptors,
    get_cleanup_order,
    get_descriptor,
    register_descriptor,
)

__all__ = [
    "EntityDescriptor",
    "CUSTOMER",
    "ITEM",
    "SITE",
    "SALES_ORDER",
    "get_all_descriptors",
    "get_cleanup_order",
    "get_descriptor",
    "register_descriptor",
]
