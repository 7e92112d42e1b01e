"""ClusterClient backed by ``kubernetes_asyncio``."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
from kubernetes_asyncio import client, config, watch
from kubernetes_asyncio.client.exceptions import ApiException

from kubestream.cluster.base import ClusterClient, ClusterConfigError, StreamOpenError
from kubestream.models.events import WatchEvent, decode_watch_event
from kubestream.models.pods import PodInfo
from kubestream.observability.logging import get_logger

_log = get_logger("cluster.kube")


class KubeClusterClient(ClusterClient):
    """Lists, watches and tails pods through ``CoreV1Api``."""

    def __init__(self, api_client: client.ApiClient) -> None:
        self._api = api_client
        self._core = client.CoreV1Api(api_client)

    @classmethod
    async def from_kubeconfig(cls, kubeconfig: str = "") -> KubeClusterClient:
        """Build a client from *kubeconfig*, or the in-cluster service account.

        The kubeconfig file wins when it exists; otherwise the in-cluster
        configuration is tried.

        Raises:
            ClusterConfigError: neither source produced a usable configuration.
        """
        try:
            if kubeconfig and os.path.exists(kubeconfig):
                # new_client_from_config() is async in kubernetes-asyncio
                api_client = await config.new_client_from_config(config_file=kubeconfig)
                _log.info("k8s client configured from kubeconfig", path=kubeconfig)
            else:
                # load_incluster_config() is synchronous in kubernetes-asyncio
                config.load_incluster_config()
                api_client = client.ApiClient()
                _log.info("k8s client configured from in-cluster service account")
        except (config.ConfigException, OSError) as exc:
            raise ClusterConfigError(f"cannot load cluster configuration: {exc}") from exc
        return cls(api_client)

    async def close(self) -> None:
        await self._api.close()

    async def list_namespaces(self) -> list[str]:
        result = await self._core.list_namespace()
        return [ns.metadata.name for ns in result.items]

    async def list_pods(self, namespace: str) -> list[PodInfo]:
        result = await self._core.list_namespaced_pod(namespace)
        serialize = self._api.sanitize_for_serialization
        return [PodInfo.from_manifest(serialize(pod)) for pod in result.items]

    @asynccontextmanager
    async def watch_pods(self, namespace: str) -> AsyncIterator[AsyncIterator[WatchEvent]]:
        async with watch.Watch() as watcher:
            yield _decode_events(watcher.stream(self._core.list_namespaced_pod, namespace=namespace))

    @asynccontextmanager
    async def follow_logs(self, namespace: str, pod: str, container: str) -> AsyncIterator[AsyncIterator[str]]:
        try:
            resp = await self._core.read_namespaced_pod_log(
                pod,
                namespace,
                container=container,
                follow=True,
                timestamps=True,
                _preload_content=False,
            )
        except ApiException as exc:
            raise StreamOpenError(f"{exc.status} {exc.reason}", status=exc.status) from exc
        except aiohttp.ClientError as exc:
            raise StreamOpenError(str(exc)) from exc

        try:
            # Without preloading, the client hands back error responses as-is.
            if not 200 <= resp.status <= 299:
                raise StreamOpenError(f"{resp.status} {resp.reason}", status=resp.status)
            yield _read_lines(resp.content)
        finally:
            resp.close()


async def _decode_events(stream: AsyncIterator[dict[str, Any]]) -> AsyncIterator[WatchEvent]:
    async for raw in stream:
        yield decode_watch_event(raw)


async def _read_lines(content: aiohttp.StreamReader) -> AsyncIterator[str]:
    while True:
        line = await content.readline()
        # b"" at end of input; a fragment without its newline is dropped.
        if not line.endswith(b"\n"):
            return
        yield line[:-1].decode("utf-8", errors="replace")
