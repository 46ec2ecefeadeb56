"""
Remote endpoints used as byte-transfer and timing sources.

Pure data: nothing here touches the network.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Tuple
from urllib.parse import urlsplit

from .constants import CACHE_BUST_PARAM, DOWNLOAD_TARGET_URLS, PING_TARGET_URL


class TargetKind(enum.Enum):
    LATENCY = "latency"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class Target:
    """A single remote URL tagged with what it is used for."""

    url: str
    kind: TargetKind

    @property
    def hostname(self) -> str:
        return urlsplit(self.url).hostname or ""

    def cache_busted(self, token: str) -> str:
        """Return the URL with a query parameter that defeats HTTP caches."""
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}{CACHE_BUST_PARAM}={token}"


class TargetRegistry:
    """
    The probe target plus an ordered, cyclically indexed list of download
    targets.
    """

    def __init__(self, probe_url: str, download_urls: Iterable[str]) -> None:
        self.probe = Target(probe_url, TargetKind.LATENCY)
        self.downloads: Tuple[Target, ...] = tuple(
            Target(u, TargetKind.DOWNLOAD) for u in download_urls
        )
        if not self.downloads:
            raise ValueError("At least one download target is required")

    def __len__(self) -> int:
        return len(self.downloads)

    def target_for(self, index: int) -> Target:
        return self.downloads[index % len(self.downloads)]

    def next_index(self, index: int) -> int:
        return (index + 1) % len(self.downloads)


DEFAULT_REGISTRY = TargetRegistry(PING_TARGET_URL, DOWNLOAD_TARGET_URLS)
