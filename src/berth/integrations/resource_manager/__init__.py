"""Resource manager integration."""

from berth.integrations.resource_manager.abc import MasterState, ResourceManager
from berth.integrations.resource_manager.fake import FakeResourceManager

__all__ = ["FakeResourceManager", "MasterState", "ResourceManager"]
