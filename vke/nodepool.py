"""Node pool operations.

``update_node_pool`` is what the autoscaler uses to resize a pool;
``create_node_pool`` and ``delete_node_pool`` are part of the API surface
but not of the scaling loop.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

from vke.errors import DecodeError, VKEError
from vke.infra.decode import list_of
from vke.observability.logger import logger
from vke.types import CreateNodePoolParams, Node, NodePool, NodeRemoval, UpdateNodePoolParams

if TYPE_CHECKING:
    from vke.client import VKEClient


def _seg(value: str) -> str:
    return quote(str(value), safe="")


class NodePoolClient:
    def __init__(self, client: VKEClient) -> None:
        self._client = client
        self._log = logger.bind(component="nodepool")

    # =========================================================================
    # Node Pools
    # =========================================================================

    async def list_node_pools(self, cluster_id: str, *, timeout: float | None = None) -> list[NodePool]:
        """List all node pools of a cluster."""
        self._log.debug("Listing node pools for cluster {cluster_id}", cluster_id=cluster_id)
        result = await self._client.get(
            f"/cluster/{_seg(cluster_id)}/nodegroups",
            into=list_of(NodePool.from_api), timeout=timeout,
        )
        return result or []

    async def get_node_pool(self, cluster_id: str, pool_id: str, *, timeout: float | None = None) -> NodePool:
        path = f"/cluster/{_seg(cluster_id)}/nodepool/{_seg(pool_id)}"
        result = await self._client.get(path, into=NodePool.from_api, timeout=timeout)
        if result is None:
            raise DecodeError(f"empty node pool in response to GET {path}")
        return result

    async def list_node_pool_nodes(
        self, cluster_id: str, pool_id: str, *, timeout: float | None = None
    ) -> list[Node]:
        """List the nodes of one node pool."""
        result = await self._client.get(
            f"/cluster/{_seg(cluster_id)}/nodegroups/{_seg(pool_id)}/nodes",
            into=list_of(Node.from_api), timeout=timeout,
        )
        return result or []

    async def create_node_pool(
        self,
        project_id: str,
        cluster_id: str,
        params: CreateNodePoolParams,
        *,
        timeout: float | None = None,
    ) -> NodePool:
        path = f"/cloud/project/{_seg(project_id)}/kube/{_seg(cluster_id)}/nodepool"
        self._log.info("Creating node pool in cluster {cluster_id}", cluster_id=cluster_id)
        result = await self._client.post(path, dict(params), into=NodePool.from_api, timeout=timeout)
        if result is None:
            raise DecodeError(f"empty node pool in response to POST {path}")
        return result

    async def update_node_pool(
        self,
        cluster_id: str,
        pool_id: str,
        *,
        min_nodes: int | None = None,
        max_nodes: int | None = None,
        autoscale: bool | None = None,
        nodes_to_remove: list[str] | None = None,
        timeout: float | None = None,
    ) -> NodePool | None:
        """Update size bounds, autoscaling or remove named nodes.

        Only the arguments that are set end up in the request body. Returns
        the updated pool, or ``None`` when the API answers without a body.
        """
        body: UpdateNodePoolParams = {}
        if min_nodes is not None:
            body["minNodes"] = min_nodes
        if max_nodes is not None:
            body["maxNodes"] = max_nodes
        if autoscale is not None:
            body["autoscale"] = autoscale
        if nodes_to_remove:
            body["nodesToRemove"] = list(nodes_to_remove)

        self._log.info(
            "Updating node pool {pool_id} of cluster {cluster_id}: {body}",
            pool_id=pool_id, cluster_id=cluster_id, body=body,
        )
        return await self._client.put(
            f"/cluster/{_seg(cluster_id)}/nodegroups/{_seg(pool_id)}",
            dict(body), into=NodePool.from_api, timeout=timeout,
        )

    async def delete_node_pool(
        self, project_id: str, cluster_id: str, pool_id: str, *, timeout: float | None = None
    ) -> NodePool | None:
        self._log.info("Deleting node pool {pool_id} of cluster {cluster_id}", pool_id=pool_id, cluster_id=cluster_id)
        return await self._client.delete(
            f"/cloud/project/{_seg(project_id)}/kube/{_seg(cluster_id)}/nodepool/{_seg(pool_id)}",
            into=NodePool.from_api, timeout=timeout,
        )

    # =========================================================================
    # Nodes
    # =========================================================================

    async def delete_node(
        self, cluster_id: str, pool_id: str, node_name: str, *, timeout: float | None = None
    ) -> NodeRemoval:
        """Remove one named node from a pool.

        API, transport and decode failures are reported in the returned
        :class:`NodeRemoval` instead of being raised. Cancellation propagates.
        """
        self._log.info("Deleting node {node} from cluster {cluster_id}", node=node_name, cluster_id=cluster_id)
        try:
            await self._client.delete(
                f"/cluster/{_seg(cluster_id)}/nodegroups/{_seg(pool_id)}/nodes/{_seg(node_name)}",
                timeout=timeout,
            )
        except VKEError as e:
            self._log.warning("Failed to delete node {node}: {error}", node=node_name, error=e)
            return NodeRemoval(node_name=node_name, removed=False, error=e)
        return NodeRemoval(node_name=node_name, removed=True)

    async def add_node(self, cluster_id: str, pool_id: str, *, timeout: float | None = None) -> Node:
        path = f"/cluster/{_seg(cluster_id)}/nodegroups/{_seg(pool_id)}/nodes/add"
        self._log.info("Adding node to pool {pool_id} of cluster {cluster_id}", pool_id=pool_id, cluster_id=cluster_id)
        result = await self._client.put(path, into=Node.from_api, timeout=timeout)
        if result is None:
            raise DecodeError(f"empty node in response to PUT {path}")
        return result


__all__ = ["NodePoolClient"]
