"""
Site entity descriptor
"""

from typing import Any, Dict

from graph_harness.contracts.base import EntityDescriptor
from graph_harness.core.data_factory import UPPERCASE, random_company, random_string


def random_site(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Generate site (warehouse/location) input data"""
    return {
        "name": f"{random_company()} Depot",
        # Visually ambiguous letters are excluded from site codes
        "code": random_string(6, UPPERCASE, exclude_chars="IO"),
    }


SITE = EntityDescriptor(
    network_name="Site",
    default_selector={
        "id": True,
        "name": True,
        "code": True,
    },
    random_data=random_site,
)
