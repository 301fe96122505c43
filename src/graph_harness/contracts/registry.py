"""
Descriptor registry for centralized entity management
"""

from graphlib import CycleError, TopologicalSorter
from typing import Dict, Iterable, List

from graph_harness.contracts.base import EntityDescriptor
from graph_harness.contracts.customers import CUSTOMER
from graph_harness.contracts.items import ITEM
from graph_harness.contracts.sales_orders import SALES_ORDER
from graph_harness.contracts.sites import SITE

_DESCRIPTORS: Dict[str, EntityDescriptor] = {}


def register_descriptor(descriptor: EntityDescriptor) -> EntityDescriptor:
    """Register a descriptor so it can be looked up by network name"""
    existing = _DESCRIPTORS.get(descriptor.network_name)
    if existing is not None and existing is not descriptor:
        raise ValueError(f"Descriptor already registered: {descriptor.network_name}")
    _DESCRIPTORS[descriptor.network_name] = descriptor
    return descriptor


for _descriptor in (CUSTOMER, ITEM, SITE, SALES_ORDER):
    register_descriptor(_descriptor)


def get_descriptor(network_name: str) -> EntityDescriptor:
    """Get descriptor for a specific entity type"""
    if network_name not in _DESCRIPTORS:
        raise ValueError(f"Unknown entity type: {network_name}")
    return _DESCRIPTORS[network_name]


def get_all_descriptors() -> Dict[str, EntityDescriptor]:
    return dict(_DESCRIPTORS)


def get_dependency_graph(descriptors: Iterable[EntityDescriptor] = ()) -> Dict[str, List[str]]:
    """Parent relationships keyed by network name (all registered types when empty)"""
    descriptors = list(descriptors) or list(_DESCRIPTORS.values())
    return {d.network_name: list(d.depends_on) for d in descriptors}


def cleanup_order(graph: Dict[str, List[str]]) -> List[str]:
    """Entity types in cleanup order: children first, parents last"""
    sorter = TopologicalSorter(graph)
    try:
        parents_first = list(sorter.static_order())
    except CycleError as e:
        raise ValueError(f"Entity dependency cycle: {e.args[1]}") from e
    return list(reversed(parents_first))


def get_cleanup_order(descriptors: Iterable[EntityDescriptor] = ()) -> List[str]:
    """Cleanup order for the given descriptors (all registered types when empty)"""
    return cleanup_order(get_dependency_graph(descriptors))
