"""VKE node-pool API types.

Responses are decoded into frozen dataclasses; request bodies are TypedDicts
so unset optional fields are simply absent from the JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict

from vke.errors import VKEError

# =============================================================================
# Response Types
# =============================================================================


@dataclass(frozen=True, slots=True)
class NodePool:
    id: str
    name: str = ""
    flavor: str = ""
    status: str = ""
    min_nodes: int = 0
    max_nodes: int = 0
    current_nodes: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> NodePool:
        return cls(
            id=data["node_group_uuid"],
            name=data.get("node_group_name", ""),
            flavor=data.get("node_flavor_uuid", ""),
            status=data.get("node_groups_status", ""),
            min_nodes=int(data.get("node_group_min_size", 0)),
            max_nodes=int(data.get("node_group_max_size", 0)),
            current_nodes=int(data.get("current_nodes", 0)),
        )


@dataclass(frozen=True, slots=True)
class Node:
    id: str
    instance_name: str = ""
    cluster_id: str = ""
    node_pool_id: str = ""
    flavor: str = ""
    status: str = ""
    current_nodes: int = 0
    min_size: int = 0
    max_size: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Node:
        return cls(
            id=data["instance_uuid"],
            instance_name=data.get("instance_name", ""),
            cluster_id=data.get("cluster_uuid", ""),
            node_pool_id=data.get("node_group_uuid", ""),
            flavor=data.get("node_flavor_uuid", ""),
            status=data.get("node_groups_status", ""),
            current_nodes=int(data.get("current_nodes", 0)),
            min_size=int(data.get("node_group_min_size", 0)),
            max_size=int(data.get("node_group_max_size", 0)),
        )


@dataclass(frozen=True, slots=True)
class NodeRemoval:
    """Outcome of removing one node from a pool."""

    node_name: str
    removed: bool
    error: VKEError | None = None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


# =============================================================================
# Request Types
# =============================================================================


class UpdateNodePoolParams(TypedDict, total=False):
    """Body of ``PUT /cluster/{id}/nodegroups/{pool}`` (used for resizing)."""

    minNodes: int
    maxNodes: int
    autoscale: bool
    nodesToRemove: list[str]


class CreateNodePoolParams(TypedDict):
    flavorName: str
    autoscale: bool
    monthlyBilled: bool
    antiAffinity: bool
    name: NotRequired[str]
    minNodes: NotRequired[int]
    maxNodes: NotRequired[int]


__all__ = [
    "CreateNodePoolParams",
    "Node",
    "NodePool",
    "NodeRemoval",
    "UpdateNodePoolParams",
]
