"""
Customer entity descriptor
"""

from typing import Any, Dict

from graph_harness.contracts.base import EntityDescriptor
from graph_harness.core.data_factory import random_email, random_person_name


def random_customer(overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Generate customer input data"""
    return {
        "name": random_person_name(),
        "email": random_email(),
    }


CUSTOMER = EntityDescriptor(
    network_name="Customer",
    default_selector={
        "id": True,
        "name": True,
        "email": True,
    },
    random_data=random_customer,
)
