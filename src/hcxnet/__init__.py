from .core.integrator import HCXIntegrator
from .core.orchestrator import OutgoingRequest
from .core.settings import HCXSettings, get_settings
from .protocol import Operation, OutcomeRecord, ProtocolHeaders
from .protocol.validators import PayloadValidator

__all__ = [
    "HCXIntegrator",
    "OutgoingRequest",
    "HCXSettings",
    "get_settings",
    "Operation",
    "OutcomeRecord",
    "ProtocolHeaders",
    "PayloadValidator",
]
