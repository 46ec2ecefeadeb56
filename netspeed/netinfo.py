"""
Public network information lookup (IP, ISP, location).

Tries several free geolocation providers in order so that something is
returned even if one API is blocked or down.  All HTTP work goes through a
single ``aiohttp.ClientSession`` managed via the async-context-manager
protocol (``async with NetworkInfoClient() as client: ...``).
"""
from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiohttp

from .constants import COMMON_HEADERS, NETINFO_TIMEOUT

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass
class NetworkInfo:
    """What the outside world sees of this client."""

    ip: str
    isp: str
    location: str
    address_family: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ip": self.ip,
            "isp": self.isp,
            "location": self.location,
            "type": self.address_family,
        }


UNKNOWN_NETWORK = NetworkInfo(
    ip="Unknown",
    isp="Unknown Provider",
    location="Unknown",
    address_family="N/A",
)


# ---------------------------------------------------------------------------
# Provider parsers -- return None when the payload is unusable
# ---------------------------------------------------------------------------

def parse_ipapi(data: dict) -> Optional[NetworkInfo]:
    if data.get("error") or not data.get("ip"):
        return None
    return NetworkInfo(
        ip=data["ip"],
        isp=data.get("org") or data.get("asn") or "Unknown Provider",
        location=f"{data.get('city')}, {data.get('country_name') or data.get('country_code')}",
        address_family=data.get("version") or "IPv4",
    )


def parse_ipwhois(data: dict) -> Optional[NetworkInfo]:
    if not data.get("success"):
        return None
    connection = data.get("connection") or {}
    return NetworkInfo(
        ip=data.get("ip", ""),
        isp=connection.get("isp") or connection.get("org") or data.get("isp") or "Unknown Provider",
        location=f"{data.get('city')}, {data.get('country_code')}",
        address_family=data.get("type") or "IPv4",
    )


def parse_ipinfo(data: dict) -> Optional[NetworkInfo]:
    org = data.get("org")
    city = data.get("city")
    return NetworkInfo(
        ip=data.get("ip", ""),
        isp=re.sub(r"^AS\d+\s", "", org) if org else "Unknown",
        location=f"{city}, {data.get('country')}" if city else "Unknown",
        address_family="IPv4",
    )


PROVIDERS: List[Tuple[str, Callable[[dict], Optional[NetworkInfo]]]] = [
    ("https://ipapi.co/json/", parse_ipapi),
    ("https://ipwho.is/", parse_ipwhois),
    ("https://ipinfo.io/json", parse_ipinfo),
]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class NetworkInfoClient:
    """Async context-manager walking the provider fallback chain."""

    def __init__(
        self,
        providers: Optional[List[Tuple[str, Callable[[dict], Optional[NetworkInfo]]]]] = None,
        timeout: float = NETINFO_TIMEOUT,
    ) -> None:
        self.providers = providers if providers is not None else PROVIDERS
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    # -- Context manager ----------------------------------------------------

    async def __aenter__(self) -> NetworkInfoClient:
        self._session = aiohttp.ClientSession(headers=COMMON_HEADERS)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            raise RuntimeError(
                "NetworkInfoClient must be used as an async context manager "
                "(async with NetworkInfoClient() as client: ...)"
            )
        return self._session

    # -- Public methods -----------------------------------------------------

    async def fetch(self) -> NetworkInfo:
        """First usable provider answer, or ``UNKNOWN_NETWORK``."""
        session = self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout)

        for url, parse in self.providers:
            try:
                async with session.get(url, timeout=timeout) as resp:
                    if resp.status != 200:
                        logger.debug("%s answered HTTP %d", url, resp.status)
                        continue
                    data = await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
                logger.debug("%s failed: %s", url, exc)
                continue

            info = parse(data) if isinstance(data, dict) else None
            if info is not None:
                return info

        logger.warning("No network info provider answered")
        return UNKNOWN_NETWORK


async def fetch_network_info() -> NetworkInfo:
    async with NetworkInfoClient() as client:
        return await client.fetch()
