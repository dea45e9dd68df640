"""Data models for berth."""

from berth.models.cluster import ClusterInfo, DiscoveryResult, ServiceInstance, ZookeeperEnsemble
from berth.models.package import (
    InstalledApp,
    PackageDefinition,
    PackageRequest,
    PackageSource,
    PackageSummary,
    SourceType,
)
from berth.models.sync import FetchedCatalog, SourceRecord, SyncResult

__all__ = [
    "ClusterInfo",
    "DiscoveryResult",
    "FetchedCatalog",
    "InstalledApp",
    "PackageDefinition",
    "PackageRequest",
    "PackageSource",
    "PackageSummary",
    "ServiceInstance",
    "SourceRecord",
    "SourceType",
    "SyncResult",
    "ZookeeperEnsemble",
]
