"""Per-run deployment state owned by one orchestrator instance."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable


def _context_utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeploymentContext:
    """Mutable state scoped to a single deployment run.

    Attributes:
        cert_basename: Certificate name prefix.
        clock: Clock used once to derive the certificate name.
        activated: True only after the UI activation phase ran and succeeded.
        certificate_id: Identifier of the deployed certificate once resolved.
        appliance_version: Version string reported by the appliance.
    """

    cert_basename: str
    clock: Callable[[], datetime] = _context_utc_now
    activated: bool = False
    certificate_id: int | None = None
    appliance_version: str = ""
    _certificate_name: str | None = field(default=None, init=False, repr=False)

    def context_certificate_name(self) -> str:
        """Return the memoized certificate name for this run.

        Returns:
            str: `<basename>-YYYY-MM-DD-<unix seconds>`, fixed on first call.

        Raises:
            ValueError: Raised when the basename is blank.
        """

        if self._certificate_name is None:
            basename = self.cert_basename.strip()
            if not basename:
                raise ValueError("cert_basename must not be blank")
            deployed_at = self.clock()
            if deployed_at.tzinfo is None:
                deployed_at = deployed_at.replace(tzinfo=timezone.utc)
            self._certificate_name = (
                f"{basename}-{deployed_at.strftime('%Y-%m-%d')}-{int(deployed_at.timestamp())}"
            )
        return self._certificate_name
