"""Best-effort check whether the host has any route to the internet."""
from __future__ import annotations

import socket

# Connecting a UDP socket sends no packets; it only asks the kernel for a route.
_ROUTE_PROBES = (
    (socket.AF_INET, ("8.8.8.8", 53)),
    (socket.AF_INET6, ("2001:4860:4860::8888", 53)),
)


def host_is_online() -> bool:
    for family, addr in _ROUTE_PROBES:
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.connect(addr)
            return True
        except OSError:
            continue
    return False
