"""Connectivity gate and active transport classification"""
import logging
import os
import socket
from enum import Enum
from typing import Optional
import psutil
from .config import settings

logger = logging.getLogger("PingState.Connectivity")

CELLULAR_PREFIXES = ("wwan", "rmnet", "ccmni", "ppp")
ETHERNET_PREFIXES = ("eth", "en")
SYSFS_NET = "/sys/class/net"


class NetworkType(str, Enum):
    WIFI = "WiFi"
    CELLULAR = "Cellular"
    ETHERNET = "Ethernet"
    UNKNOWN = "Unknown"


def _default_route_ip(target: str) -> str:
    """Local address the kernel would use to reach target. Sends nothing."""
    s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        s.connect((target, 53))
        return s.getsockname()[0]
    finally:
        s.close()


def active_interface(target: Optional[str] = None) -> Optional[str]:
    """Name of the interface carrying the default route, or None"""
    local_ip = _default_route_ip(target or settings.connectivity_target)
    for name, addrs in psutil.net_if_addrs().items():
        for addr in addrs:
            if addr.family == socket.AF_INET and addr.address == local_ip:
                return name
    return None


def is_network_available() -> bool:
    """
    True when an up, non-loopback interface holds the default route.
    Never raises: any failure reports no network.
    """
    try:
        name = active_interface()
        if name is None:
            return False

        stats = psutil.net_if_stats().get(name)
        if stats is None or not stats.isup:
            return False

        return not name.startswith("lo")
    except Exception as e:
        logger.debug(f"Network availability check failed: {e}")
        return False


def classify_interface(name: str) -> NetworkType:
    if os.path.isdir(os.path.join(SYSFS_NET, name, "wireless")) or name.startswith("wl"):
        return NetworkType.WIFI
    if name.startswith(CELLULAR_PREFIXES):
        return NetworkType.CELLULAR
    if name.startswith(ETHERNET_PREFIXES):
        return NetworkType.ETHERNET
    return NetworkType.UNKNOWN


def get_network_type() -> NetworkType:
    """Transport of the active interface; Unknown on any error"""
    try:
        name = active_interface()
        if name is None:
            return NetworkType.UNKNOWN
        return classify_interface(name)
    except Exception as e:
        logger.debug(f"Network type query failed: {e}")
        return NetworkType.UNKNOWN
