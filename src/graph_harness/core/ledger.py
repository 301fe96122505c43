"""
Per-test entity ledger with guaranteed release

Entities are registered when they are created and deleted when the ledger's
scope exits, on success, assertion failure or error alike. Children are
deleted before parents using a topological order of descriptor dependencies.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from graph_harness.contracts.registry import cleanup_order
from graph_harness.core.entity_node import EntityNode
from graph_harness.models.selector import Selector
from graph_harness.utils.error_handling import CleanupError, NotFoundError, StructuredLogger

logger = logging.getLogger(__name__)


class EntityLedger:
    """Track created entities and release them in dependency order"""

    def __init__(self):
        self._nodes: Dict[str, EntityNode] = {}
        self._tracked: Dict[str, List[str]] = {}
        self.cleanup_errors: List[CleanupError] = []

    async def __aenter__(self) -> "EntityLedger":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        await self.release_all()
        # Never suppress the body's exception
        return False

    def track(self, node: EntityNode, instance_or_id: Any) -> str:
        """Register an entity for release; accepts an instance or a bare identifier"""
        if isinstance(instance_or_id, dict):
            identifier = instance_or_id.get(node.descriptor.id_field)
        else:
            identifier = instance_or_id
        if identifier is None or str(identifier) == "":
            raise ValueError(f"Cannot track {node.name} without an identifier")

        identifier = str(identifier)
        self._nodes.setdefault(node.name, node)
        ids = self._tracked.setdefault(node.name, [])
        if identifier not in ids:
            ids.append(identifier)
        return identifier

    def forget(self, node: EntityNode, identifier: Any) -> None:
        """Stop tracking an entity the test removed itself"""
        ids = self._tracked.get(node.name, [])
        if str(identifier) in ids:
            ids.remove(str(identifier))

    def tracked(self, name: Optional[str] = None) -> Dict[str, List[str]]:
        """Tracked identifiers per entity type"""
        if name is not None:
            return {name: list(self._tracked.get(name, []))}
        return {k: list(v) for k, v in self._tracked.items() if v}

    def total_tracked(self) -> int:
        return sum(len(ids) for ids in self._tracked.values())

    def release_order(self) -> List[str]:
        """Tracked entity types, children first"""
        graph = {name: list(node.descriptor.depends_on) for name, node in self._nodes.items()}
        return [name for name in cleanup_order(graph) if name in self._tracked]

    async def create(
        self,
        node: EntityNode,
        overrides: Optional[Dict[str, Any]] = None,
        selector: Optional[Selector] = None,
    ) -> Dict[str, Any]:
        """Create through the node and register the result in one step"""
        instance = await node.create(overrides, selector=selector)
        self.track(node, instance)
        return instance

    async def release(self, node: EntityNode, identifier: Any) -> None:
        """Delete one entity now; errors propagate like any node call"""
        await node.delete(identifier)
        self.forget(node, identifier)

    async def _release_one(self, node: EntityNode, identifier: str) -> Tuple[str, Optional[CleanupError]]:
        try:
            await node.delete(identifier)
        except NotFoundError:
            logger.debug(f"{node.name} {identifier} already gone during cleanup")
        except Exception as e:
            error = CleanupError(f"Failed to release {node.name} {identifier}: {e}", node.name, identifier)
            error.__cause__ = e
            return identifier, error
        return identifier, None

    async def release_all(self) -> List[CleanupError]:
        """
        Release every tracked entity, children before parents.

        Entities of the same type are deleted concurrently. Failures are wrapped
        in CleanupError, logged and collected; they never interrupt the sweep.
        """
        errors: List[CleanupError] = []

        for name in self.release_order():
            node = self._nodes[name]
            ids = list(reversed(self._tracked.get(name, [])))
            if not ids:
                continue
            logger.debug(f"Releasing {len(ids)} {name} entities")

            results = await asyncio.gather(*(self._release_one(node, i) for i in ids))
            for identifier, error in results:
                if error is None:
                    self.forget(node, identifier)
                    continue
                StructuredLogger.log_error(
                    "cleanup_error",
                    str(error),
                    exception=error.__cause__,
                    extra_context={"entity": name, "identifier": identifier},
                    level=logging.WARNING,
                )
                errors.append(error)

        self.cleanup_errors.extend(errors)
        return errors
