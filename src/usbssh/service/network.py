"""Best-effort network information for the start notice."""

import logging
import socket

import psutil

logger = logging.getLogger(__name__)

NO_NETWORK_INFO = "Could not retrieve network info."


def get_interface_addresses(interface: str | None = None) -> dict[str, list[str]]:
    """List IPv4 addresses per interface, skipping loopback.

    Args:
        interface: Only report this interface when given.

    Returns:
        Mapping of interface name to its IPv4 addresses.
    """
    try:
        all_addrs = psutil.net_if_addrs()
    except OSError as e:
        logger.debug(f"net_if_addrs failed: {e}")
        return {}

    result: dict[str, list[str]] = {}
    for name, addrs in all_addrs.items():
        if name == "lo" or (interface and name != interface):
            continue
        ipv4 = [a.address for a in addrs if a.family == socket.AF_INET]
        if ipv4:
            result[name] = ipv4
    return result


def describe_network(interface: str | None = None) -> str:
    """Describe reachable addresses for the user.

    Prefers the gadget interface; falls back to every non-loopback interface
    when the gadget has no address yet.
    """
    addresses = get_interface_addresses(interface) if interface else {}
    if not addresses:
        addresses = get_interface_addresses()
    if not addresses:
        return NO_NETWORK_INFO
    return "\n".join(
        f"{name}: {', '.join(ips)}" for name, ips in sorted(addresses.items())
    )
