class DeviceHubError(Exception):
    """Base exception for the device hub."""


class DiscoveryError(DeviceHubError):
    """Raised when the UDP discovery responder cannot bind or serve."""


class AgentError(DeviceHubError):
    """Raised when the heartbeat agent is misconfigured."""
