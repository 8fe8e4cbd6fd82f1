"""
herbtrace_ledger/registry.py - Node Registry

Responsibilities:
- Register participants with a fixed role
- Derive capabilities once, from the role table
- Answer lookups for admission control

Writes take an exclusive lock. Reads are lock-free: a Node is fully built
and frozen before it is placed in the map, so a reader sees either nothing
or the complete node.
"""
import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .errors import LedgerException, duplicate_node, invalid_role, not_found
from .models import Node, Role, ROLE_CAPABILITIES

logger = logging.getLogger(__name__)


class NodeRegistry:
    def __init__(self, now_ms: Callable[[], int]):
        self._nodes: Dict[str, Node] = {}
        self._write_lock = threading.Lock()
        self._now_ms = now_ms

    def register(
        self,
        node_id: str,
        role: Union[Role, str],
        public_key: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Node:
        """
        Register a new participant.

        Raises:
            LedgerException: INVALID_ROLE for a role outside Role,
                DUPLICATE_NODE if node_id is already present.
        """
        try:
            role = Role(role)
        except ValueError:
            raise LedgerException(invalid_role(role, [r.value for r in Role]))

        node = Node(
            node_id=node_id,
            role=role,
            public_key=public_key,
            metadata=MappingProxyType(dict(metadata or {})),
            capabilities=ROLE_CAPABILITIES[role],
            registered_at=self._now_ms(),
        )

        with self._write_lock:
            if node_id in self._nodes:
                raise LedgerException(duplicate_node(node_id))
            self._nodes[node_id] = node

        logger.info("Node registered: %s (role=%s)", node_id, role.value)
        return node

    def get(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise LedgerException(not_found("Node", node_id))
        return node

    def find(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def is_active(self, node_id: str) -> bool:
        node = self._nodes.get(node_id)
        return node is not None and node.active

    def all(self) -> Tuple[Node, ...]:
        return tuple(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes
