"""Certificate registry package for name-to-identifier resolution."""

from .service import CertificateEntry, CertificateRegistry, RegistryConsistencyError

__all__ = ["CertificateEntry", "CertificateRegistry", "RegistryConsistencyError"]
