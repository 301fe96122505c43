"""
Test-authoring harness for remote graph-query APIs
"""

from graph_harness.config import HarnessConfig, Timeouts, get_config
from graph_harness.contracts import CUSTOMER, ITEM, SALES_ORDER, SITE, EntityDescriptor
from graph_harness.core.entity_node import EntityNode
from graph_harness.core.graph_client import GraphClient
from graph_harness.core.ledger import EntityLedger
from graph_harness.core.polling import poll_until
from graph_harness.reporting.tags import Tag
from graph_harness.utils.error_handling import (
    ClassificationError,
    CleanupError,
    HarnessError,
    MissingIdentifierError,
    NotFoundError,
    PollingTimeoutError,
    RemoteError,
    RemoteQueryError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "HarnessConfig",
    "Timeouts",
    "get_config",
    "EntityDescriptor",
    "CUSTOMER",
    "ITEM",
    "SITE",
    "SALES_ORDER",
    "EntityLedger",
    "EntityNode",
    "GraphClient",
    "poll_until",
    "Tag",
    "ClassificationError",
    "CleanupError",
    "HarnessError",
    "MissingIdentifierError",
    "NotFoundError",
    "PollingTimeoutError",
    "RemoteError",
    "RemoteQueryError",
    "ValidationError",
]
