from .headers import HeaderBuilder
from .keys import KeyResolver
from .tokens import TokenManager
from .retry import RetryPolicy
from .orchestrator import OutgoingRequest
from .integrator import HCXIntegrator

__all__ = [
    "HeaderBuilder",
    "KeyResolver",
    "TokenManager",
    "RetryPolicy",
    "OutgoingRequest",
    "HCXIntegrator",
]
