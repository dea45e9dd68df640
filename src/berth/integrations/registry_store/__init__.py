"""Registry store integration."""

from berth.integrations.registry_store.abc import RegistryStore
from berth.integrations.registry_store.fake import FakeRegistryStore

__all__ = ["RegistryStore", "FakeRegistryStore"]
