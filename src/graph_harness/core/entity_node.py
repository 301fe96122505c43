"""
Generic entity node: uniform CRUD surface over any descriptor-defined entity type
"""

import logging
from typing import Any, Dict, Generic, List, Optional, TypeVar

from graph_harness.contracts.base import EntityDescriptor
from graph_harness.core.graph_client import GraphClient
from graph_harness.models.selector import FilterExpression, Selector, by_id, merge_selectors, render_selection
from graph_harness.utils.error_handling import MissingIdentifierError, NotFoundError, RemoteError

logger = logging.getLogger(__name__)

InstanceT = TypeVar("InstanceT", bound=Dict[str, Any])


def _require_identifier(identifier: Any, operation: str, network_name: str) -> str:
    if identifier is None or not str(identifier).strip():
        raise MissingIdentifierError(f"{operation} {network_name} requires a non-empty identifier, got {identifier!r}")
    return str(identifier)


def _as_remote_identifier(identifier: Any) -> Optional[str]:
    # Reads and deletes leave an empty identifier for the remote API to reject
    return None if identifier is None else str(identifier)


class EntityNode(Generic[InstanceT]):
    """
    CRUD wrapper bound to one entity descriptor and one API client.

    Every remote failure propagates to the caller; nothing is swallowed here.
    A node belongs to a single test and is not shared.
    """

    def __init__(self, descriptor: EntityDescriptor, client: GraphClient):
        self.descriptor = descriptor
        self.client = client

    def __repr__(self) -> str:
        return f"EntityNode({self.descriptor.network_name})"

    @property
    def name(self) -> str:
        return self.descriptor.network_name

    def _selection(self, selector: Optional[Selector]) -> str:
        # The identifier is always fetched so results can be tracked and re-read
        chosen = selector if selector is not None else self.descriptor.default_selector
        return render_selection(merge_selectors(chosen, {self.descriptor.id_field: True}), depth=2)

    def _identifier_of(self, instance: Optional[Dict[str, Any]], operation: str) -> str:
        value = (instance or {}).get(self.descriptor.id_field)
        if value is None or value == "":
            raise RemoteError(f"{operation} {self.name} returned no {self.descriptor.id_field}: {instance}")
        return str(value)

    # === READ ===

    async def query(
        self,
        filter: Optional[FilterExpression] = None,
        selector: Optional[Selector] = None,
        limit: Optional[int] = None,
    ) -> List[InstanceT]:
        """Read instances matching `filter` (unrestricted when omitted)"""
        d = self.descriptor
        document = (
            f"query Query{d.network_name}s($filter: {d.filter_type}, $limit: Int) {{\n"
            f"  {d.list_field}(filter: $filter, limit: $limit) {self._selection(selector)}\n"
            f"}}"
        )
        data = await self.client.execute(
            document,
            {"filter": filter or None, "limit": limit},
            operation="query",
            operation_name=f"Query{d.network_name}s",
        )
        return list(data.get(d.list_field) or [])

    async def get(self, identifier: Any, selector: Optional[Selector] = None) -> InstanceT:
        """Read one instance; NotFoundError when it does not exist"""
        d = self.descriptor
        identifier = _as_remote_identifier(identifier)
        document = (
            f"query Get{d.network_name}($id: ID!) {{\n"
            f"  {d.single_field}(id: $id) {self._selection(selector)}\n"
            f"}}"
        )
        data = await self.client.execute(document, {"id": identifier}, operation="query", operation_name=f"Get{d.network_name}")
        instance = data.get(d.single_field)
        if instance is None:
            raise NotFoundError(f"{d.network_name} {identifier} not found")
        return instance

    # === WRITE ===

    async def create(self, overrides: Optional[Dict[str, Any]] = None, selector: Optional[Selector] = None) -> InstanceT:
        """
        Create an instance from fresh random data with caller overrides on top.

        The remote API is the only validation authority; rejected input raises
        ValidationError.
        """
        d = self.descriptor
        data_input = d.generate(overrides)
        document = (
            f"mutation Create{d.network_name}($input: {d.input_type}!) {{\n"
            f"  {d.create_field}(input: $input) {self._selection(selector)}\n"
            f"}}"
        )
        data = await self.client.execute(document, {"input": data_input}, operation="mutation", operation_name=f"Create{d.network_name}")
        instance = data.get(d.create_field)
        identifier = self._identifier_of(instance, "create")
        logger.debug(f"Created {d.network_name} {identifier}")
        return instance

    async def update(self, identifier: Any, partial: Dict[str, Any], selector: Optional[Selector] = None) -> InstanceT:
        """Apply a partial update; the identifier is checked before any network call"""
        d = self.descriptor
        identifier = _require_identifier(identifier, "update", d.network_name)
        document = (
            f"mutation Update{d.network_name}($id: ID!, $input: {d.input_type}!) {{\n"
            f"  {d.update_field}(id: $id, input: $input) {self._selection(selector)}\n"
            f"}}"
        )
        data = await self.client.execute(
            document,
            {"id": identifier, "input": dict(partial)},
            operation="mutation",
            operation_name=f"Update{d.network_name}",
        )
        instance = data.get(d.update_field)
        if instance is None:
            raise NotFoundError(f"{d.network_name} {identifier} not found")
        return instance

    async def delete(self, identifier: Any) -> None:
        """Delete an instance; NotFoundError when it does not exist"""
        d = self.descriptor
        identifier = _as_remote_identifier(identifier)
        document = (
            f"mutation Delete{d.network_name}($id: ID!) {{\n"
            f"  {d.delete_field}(id: $id) {render_selection({d.id_field: True}, depth=2)}\n"
            f"}}"
        )
        data = await self.client.execute(document, {"id": identifier}, operation="mutation", operation_name=f"Delete{d.network_name}")
        if data.get(d.delete_field) is None:
            raise NotFoundError(f"{d.network_name} {identifier} not found")
        logger.debug(f"Deleted {d.network_name} {identifier}")

    async def query_random(self, overrides: Optional[Dict[str, Any]] = None, selector: Optional[Selector] = None) -> InstanceT:
        """Create a random instance, then read it back through the query path"""
        created = await self.create(overrides, selector=selector)
        identifier = self._identifier_of(created, "create")
        found = await self.query(by_id(identifier, self.descriptor.id_field), selector=selector, limit=1)
        if not found:
            raise NotFoundError(f"{self.name} {identifier} was created but is not queryable")
        return found[0]
