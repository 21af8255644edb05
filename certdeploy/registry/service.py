"""Local cache mapping appliance certificate names to server identifiers.

The import call does not reliably return the new certificate's identifier, so
each deployment re-lists remote certificates and matches by name. Entries are
only ever added; names already known locally are never evicted or rebound.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from certdeploy.adapters import RemoteCallPort, RemoteMethod, RemoteProtocolError

logger = logging.getLogger(__name__)


class RegistryConsistencyError(RuntimeError):
    """Raised when a refresh cannot confirm the certificate expected for this run."""


@dataclass(frozen=True)
class CertificateEntry:
    """One registry entry.

    Attributes:
        name: Appliance certificate name.
        certificate_id: Server-assigned certificate identifier.
    """

    name: str
    certificate_id: int


class CertificateRegistry:
    """Prefix-filtered certificate name registry owned by one deployment run."""

    def __init__(self, remote: RemoteCallPort, name_prefix: str, timeout_seconds: float):
        """Initialize an empty registry.

        Args:
            remote: Authenticated remote call port.
            name_prefix: Only certificates whose name starts with this prefix are kept.
            timeout_seconds: Timeout for the listing call.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if remote is None:
            raise ValueError("remote must not be None")
        if not name_prefix.strip():
            raise ValueError("name_prefix must not be blank")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

        self._remote = remote
        self._name_prefix = name_prefix.strip()
        self._timeout_seconds = timeout_seconds
        self._certificate_ids: dict[str, int] = {}

    @property
    def name_prefix(self) -> str:
        return self._name_prefix

    def registry_refresh(self, expected_name: str) -> int:
        """List remote certificates, merge matching entries and confirm the expected name.

        Args:
            expected_name: Certificate name created by the current run.

        Returns:
            int: Identifier of the expected certificate.

        Raises:
            RegistryConsistencyError: Raised when the listing is empty or lacks the expected name.
            RemoteProtocolError: Raised when the listing payload is malformed.
            ConnectionError: Raised when the listing call fails.
            TimeoutError: Raised when the listing call times out.
        """

        payload = self._remote.remote_call(
            RemoteMethod.CERTIFICATE_QUERY.value,
            self._timeout_seconds,
            [],
        )
        listed_entries = self._registry_decode_listing(payload)
        if not listed_entries:
            raise RegistryConsistencyError("no certificates were found in the certificate list")

        added_count = 0
        for entry in listed_entries:
            if not entry.name.startswith(self._name_prefix):
                continue
            if entry.name in self._certificate_ids:
                continue
            self._certificate_ids[entry.name] = entry.certificate_id
            added_count += 1
            logger.debug("registered certificate name=%s id=%d", entry.name, entry.certificate_id)

        expected_id = self._certificate_ids.get(expected_name)
        if expected_id is None:
            raise RegistryConsistencyError(
                f"certificate search failed, certificate {expected_name} was not deployed"
            )
        logger.info(
            "found certificate %s with id %d (%d registry entries, %d added)",
            expected_name,
            expected_id,
            len(self._certificate_ids),
            added_count,
        )
        return expected_id

    def registry_lookup(self, name: str) -> int | None:
        """Return the identifier for a name, or None when unknown. No remote call."""

        return self._certificate_ids.get(name)

    def registry_all(self) -> list[CertificateEntry]:
        """Return a snapshot of all registry entries in no particular order."""

        return [
            CertificateEntry(name=name, certificate_id=certificate_id)
            for name, certificate_id in self._certificate_ids.items()
        ]

    def _registry_decode_listing(self, payload: Any) -> list[CertificateEntry]:
        """Decode the certificate listing payload.

        Args:
            payload: Decoded listing response.

        Returns:
            list[CertificateEntry]: Listed entries in server order.

        Raises:
            RemoteProtocolError: Raised when the payload or one entry is malformed.
        """

        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RemoteProtocolError(
                f"certificate listing must be a list, got {type(payload).__name__}",
                method=RemoteMethod.CERTIFICATE_QUERY.value,
            )

        entries: list[CertificateEntry] = []
        for item in payload:
            name = item.get("name") if isinstance(item, dict) else None
            raw_id = item.get("id") if isinstance(item, dict) else None
            if not isinstance(name, str) or not name:
                raise RemoteProtocolError(
                    f"certificate listing entry has no name: {item!r}",
                    method=RemoteMethod.CERTIFICATE_QUERY.value,
                )
            certificate_id = self._registry_normalize_id(raw_id)
            if certificate_id is None:
                raise RemoteProtocolError(
                    f"certificate listing entry {name} has an invalid id: {raw_id!r}",
                    method=RemoteMethod.CERTIFICATE_QUERY.value,
                )
            entries.append(CertificateEntry(name=name, certificate_id=certificate_id))
        return entries

    def _registry_normalize_id(self, raw_id: Any) -> int | None:
        # JSON numbers may decode as integral floats
        if isinstance(raw_id, bool):
            return None
        if isinstance(raw_id, int):
            return raw_id
        if isinstance(raw_id, float) and raw_id.is_integer():
            return int(raw_id)
        return None
