"""Cluster API access for kubestream.

Submodules
----------
base -- ClusterClient: the contract the streaming core relies on.
kube -- KubeClusterClient: implementation on kubernetes-asyncio.
"""

from kubestream.cluster.base import ClusterClient, ClusterConfigError, StreamOpenError

__all__ = ["ClusterClient", "ClusterConfigError", "StreamOpenError"]
