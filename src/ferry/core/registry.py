"""Central transport registry."""

from __future__ import annotations

import logging
from typing import Iterator
from urllib.parse import urlsplit

from ferry.models.transport import Transport

log = logging.getLogger(__name__)

DEFAULT_TRANSPORT = "local_folder"


def destination_scheme(destination: str) -> str:
    """Return the URL scheme of *destination*, or '' for a plain path.

    Single-letter schemes are Windows drive letters (``C:\\share``), not URLs.
    """
    scheme = urlsplit(destination).scheme.lower()
    return "" if len(scheme) <= 1 else scheme


class TransportRegistry:
    """Stores and retrieves registered upload transports."""

    def __init__(self) -> None:
        self._transports: dict[str, Transport] = {}

    def register(self, transport: Transport) -> None:
        """Register a transport instance."""
        if transport.id in self._transports:
            log.warning("Transport '%s' already registered, skipping duplicate", transport.id)
            return
        self._transports[transport.id] = transport
        log.debug("Registered transport: %s (%s)", transport.id, transport.name)

    def get(self, transport_id: str) -> Transport | None:
        """Get a transport by its ID."""
        return self._transports.get(transport_id)

    def get_available(self) -> list[Transport]:
        """Get all transports that are usable on this system."""
        available = []
        for transport in self._transports.values():
            try:
                if transport.is_available():
                    available.append(transport)
            except Exception:
                log.exception("Error checking availability for transport '%s'", transport.id)
        return available

    def for_destination(self, destination: str) -> Transport | None:
        """Pick the transport that handles *destination*.

        Plain paths go to the default transport; URLs go to the first
        available transport that lists the URL's scheme.
        """
        scheme = destination_scheme(destination)
        if not scheme:
            transport = self.get(DEFAULT_TRANSPORT)
            return transport if transport and transport.is_available() else None
        for transport in self.get_available():
            if scheme in transport.schemes:
                return transport
        return None

    def __len__(self) -> int:
        return len(self._transports)

    def __iter__(self) -> Iterator[Transport]:
        return iter(self._transports.values())

    def __contains__(self, transport_id: str) -> bool:
        return transport_id in self._transports
