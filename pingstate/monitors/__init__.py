"""Probe strategy exports"""
from .base import BaseMonitor, PingMethod, PingResult
from .icmp_monitor import ICMPMonitor
from .tcp_monitor import TCPMonitor
from .system_monitor import SystemPingMonitor, parse_ping_output

__all__ = [
    'BaseMonitor',
    'PingMethod',
    'PingResult',
    'ICMPMonitor',
    'TCPMonitor',
    'SystemPingMonitor',
    'parse_ping_output',
]
