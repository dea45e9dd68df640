"""Cluster identity and service discovery values."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ServiceInstance:
    """A healthy service instance as reported by the registry catalog."""

    node: str
    address: str
    port: int
    tags: tuple[str, ...] = ()

    @property
    def host_port(self) -> str:
        if self.port:
            return f"{self.address}:{self.port}"
        return self.address


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of resolving one logical service name.

    discovered is True only when the address came from the catalog.
    """

    resolved_address: str
    discovered: bool = False


@dataclass(frozen=True)
class ZookeeperEnsemble:
    """The coordination service as a comma-delimited list of servers."""

    servers: tuple[str, ...]

    @staticmethod
    def parse(value: str) -> "ZookeeperEnsemble":
        servers = tuple(s.strip() for s in value.split(",") if s.strip())
        return ZookeeperEnsemble(servers=servers)

    @property
    def connection_string(self) -> str:
        return ",".join(self.servers)

    def url(self, chroot: str = "") -> str:
        """zk:// URL, e.g. zk://zk1:2181,zk2:2181/mesos."""
        suffix = f"/{chroot.lstrip('/')}" if chroot else ""
        return f"zk://{self.connection_string}{suffix}"


@dataclass(frozen=True)
class ClusterInfo:
    """Cluster identity handed to job templates."""

    mesos_url: str
    mesos_leader: str
    cluster_name: str
    zookeeper: ZookeeperEnsemble

    def template_context(self) -> dict[str, str]:
        return {
            "name": self.cluster_name,
            "mesos_url": self.mesos_url,
            "mesos_leader": self.mesos_leader,
            "zookeeper": self.zookeeper.connection_string,
            "zookeeper_url": self.zookeeper.url(),
            "mesos_zk_url": self.zookeeper.url("mesos"),
        }
