"""Host reachability prober: ICMP, TCP and system ping raced and reconciled"""
from .monitors import PingMethod, PingResult
from .connectivity import NetworkType, get_network_type, is_network_available
from .ping_service import PingService, ServiceClosedError
from .continuous_manager import ContinuousPingManager, ContinuousSession

__all__ = [
    'PingMethod',
    'PingResult',
    'NetworkType',
    'get_network_type',
    'is_network_available',
    'PingService',
    'ServiceClosedError',
    'ContinuousPingManager',
    'ContinuousSession',
]
