"""Input validation utilities for the ping API"""
import ipaddress
import re
import logging

logger = logging.getLogger("PingState.Validation")

# RFC 1123 label: alphanumerics and inner hyphens, 1-63 chars
HOSTNAME_LABEL = re.compile(r'^(?!-)[A-Za-z0-9-]{1,63}(?<!-)$')


def validate_host(host: str) -> bool:
    """Accept IPv4/IPv6 literals and DNS hostnames"""
    if not host or len(host) > 253:
        logger.warning(f"Invalid host length: {len(host) if host else 0}")
        return False

    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass

    labels = host.rstrip(".").split(".")
    if not all(HOSTNAME_LABEL.match(label) for label in labels):
        logger.warning(f"Invalid hostname: {host}")
        return False

    # All-numeric dotted names are malformed IPv4, not hostnames
    if all(label.isdigit() for label in labels):
        logger.warning(f"Invalid IP address: {host}")
        return False

    return True


def validate_port(port: int) -> bool:
    """Validate port number is in valid range"""
    if not (1 <= port <= 65535):
        logger.warning(f"Port out of range (1-65535): {port}")
        return False
    return True


def validate_positive_ms(value: int) -> bool:
    """Timeouts and intervals must be at least 1 ms"""
    if value < 1:
        logger.warning(f"Duration must be positive: {value}")
        return False
    return True


def validate_ping_id(ping_id: str) -> bool:
    if not ping_id or not ping_id.strip() or len(ping_id) > 128:
        logger.warning(f"Invalid ping id: {ping_id!r}")
        return False
    return True
