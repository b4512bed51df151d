from __future__ import annotations

from typing import Optional

from kazoo.client import KazooClient

from ..config import ZookeeperSettings
from ..log import getLogger
from .base import KeyValueStore

logger = getLogger(__name__)


def create_zk_client(settings: ZookeeperSettings) -> KazooClient:
    """Build and start a KazooClient from settings."""
    hosts = settings.hosts
    if settings.chroot:
        hosts = f"{hosts}/{settings.chroot.strip('/')}"

    client = KazooClient(
        hosts=hosts,
        timeout=settings.connection_timeout_s,
        connection_retry={
            "max_tries": settings.max_retries,
            "delay": settings.retry_delay_s,
        },
    )
    client.start(timeout=settings.connection_timeout_s)
    logger.info("Connected to ZooKeeper at %s", hosts)
    return client


class ZkKeyValueStore(KeyValueStore):
    """
    Key-value store on top of ZooKeeper.

    - Each key is one znode; values are stored as UTF-8 bytes.
    - Optionally namespaces paths under '/<group>' inside the client's chroot.
    """

    def __init__(
        self,
        client: KazooClient,
        group: Optional[str] = None,
        *,
        owns_client: bool = False,
    ) -> None:
        self._client = client
        self._group = group
        self._owns_client = owns_client

        self._client.ensure_path(self._full_path(""))

    @classmethod
    def from_settings(
        cls, settings: ZookeeperSettings, group: Optional[str] = None
    ) -> ZkKeyValueStore:
        return cls(create_zk_client(settings), group, owns_client=True)

    @property
    def group(self) -> Optional[str]:
        return self._group

    @property
    def client(self) -> KazooClient:
        return self._client

    def _full_path(self, key: str) -> str:
        """
        Build the ZooKeeper path inside the chroot configured on the client.
        Only adds '/<group>' if group is configured.
        """
        rel = (key or "").lstrip("/")

        if self._group:
            return f"/{self._group}/{rel}" if rel else f"/{self._group}"
        else:
            return f"/{rel}" if rel else "/"

    def get(self, key: str) -> Optional[str]:
        full_path = self._full_path(key)

        if not self._client.exists(full_path):
            return None

        data, _stat = self._client.get(full_path)
        if not data:
            return None
        return data.decode("utf-8")

    def set(self, key: str, value: str) -> None:
        full_path = self._full_path(key)
        data = value.encode("utf-8")

        if self._client.exists(full_path):
            self._client.set(full_path, data)
        else:
            self._client.create(full_path, data, makepath=True)

    def delete(self, key: str) -> bool:
        full_path = self._full_path(key)
        if self._client.exists(full_path):
            self._client.delete(full_path, recursive=True)
            return True
        return False

    def close(self) -> None:
        if self._owns_client:
            self._client.stop()
            self._client.close()
