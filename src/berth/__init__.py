"""Package-management control plane for Marathon/Mesos clusters."""

__version__ = "0.1.0"
