from .registry import RegistryClient
from .auth import GatewayAuthClient
from .gateway import GatewayDispatcher

__all__ = ["RegistryClient", "GatewayAuthClient", "GatewayDispatcher"]
