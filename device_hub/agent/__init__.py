from .client import HeartbeatAgent
from .config import AgentConfig

__all__ = [
    "AgentConfig",
    "HeartbeatAgent",
]
