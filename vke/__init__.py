"""VKE - async client for the VKE node-pool control plane.

Example:

    from vke import ClientConfig, VKEClient

    config = ClientConfig.resolve("vke", app_key="...", app_secret="...")
    async with VKEClient(config) as client:
        pools = await client.nodepools.list_node_pools(cluster_id)
        await client.nodepools.update_node_pool(cluster_id, pools[0].id, max_nodes=5)
"""

from vke.client import VKEClient
from vke.config import AuthMode, ClientConfig, default_endpoints, load_config
from vke.errors import (
    APIError,
    ConfigurationError,
    DecodeError,
    RequestCancelled,
    TransportError,
    VKEError,
)
from vke.failover import FailoverRouter, is_cross_region_error
from vke.infra.http import LoggingObserver, RequestObserver
from vke.nodepool import NodePoolClient
from vke.observability.logger import logger
from vke.types import CreateNodePoolParams, Node, NodePool, NodeRemoval, UpdateNodePoolParams

__all__ = [
    "APIError",
    "AuthMode",
    "ClientConfig",
    "ConfigurationError",
    "CreateNodePoolParams",
    "DecodeError",
    "FailoverRouter",
    "LoggingObserver",
    "Node",
    "NodePool",
    "NodePoolClient",
    "NodeRemoval",
    "RequestCancelled",
    "RequestObserver",
    "TransportError",
    "UpdateNodePoolParams",
    "VKEClient",
    "VKEError",
    "default_endpoints",
    "is_cross_region_error",
    "load_config",
    "logger",
]
