"""Local certificate and private key verification before any remote call."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from .job_errors import CertificatePreflightError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertificatePreflightResult:
    """Verified PEM material and leaf certificate metadata.

    Attributes:
        certificate_pem: Full chain PEM text, leaf first.
        private_key_pem: Private key PEM text.
        subject: RFC 4514 subject of the leaf certificate.
        not_valid_after_utc: Leaf expiry timestamp.
        chain_length: Number of certificates in the full chain.
    """

    certificate_pem: str
    private_key_pem: str
    subject: str
    not_valid_after_utc: datetime
    chain_length: int


def job_verify_certificate_key_pair(
    full_chain_path: str,
    private_key_path: str,
    now_utc: datetime | None = None,
) -> CertificatePreflightResult:
    """Load and verify a PEM full chain and private key pair.

    Args:
        full_chain_path: Path to the PEM full chain, leaf certificate first.
        private_key_path: Path to the unencrypted PEM private key.
        now_utc: Optional evaluation time override.

    Returns:
        CertificatePreflightResult: Verified PEM material and metadata.

    Raises:
        CertificatePreflightError: Raised when a file is unreadable or unparseable,
            the key does not match the leaf certificate, or the leaf has expired.
    """

    certificate_bytes = _job_read_pem_file(full_chain_path, label="certificate")
    private_key_bytes = _job_read_pem_file(private_key_path, label="private key")

    try:
        certificates = x509.load_pem_x509_certificates(certificate_bytes)
    except ValueError as error:
        raise CertificatePreflightError(f"certificate parsing error: {error}") from error
    if not certificates:
        raise CertificatePreflightError(f"no certificate found in {full_chain_path}")
    leaf_certificate = certificates[0]

    try:
        private_key = serialization.load_pem_private_key(private_key_bytes, password=None)
    except (ValueError, TypeError) as error:
        raise CertificatePreflightError(f"private key parsing error: {error}") from error

    if _job_public_key_der(leaf_certificate.public_key()) != _job_public_key_der(private_key.public_key()):
        raise CertificatePreflightError("private key does not match the certificate public key")

    evaluation_time = now_utc or datetime.now(timezone.utc)
    if evaluation_time > leaf_certificate.not_valid_after_utc:
        raise CertificatePreflightError(
            f"certificate expired at {leaf_certificate.not_valid_after_utc.isoformat()}, "
            "an expired certificate will not be used"
        )
    if evaluation_time < leaf_certificate.not_valid_before_utc:
        logger.warning(
            "certificate is not valid before %s",
            leaf_certificate.not_valid_before_utc.isoformat(),
        )

    subject = leaf_certificate.subject.rfc4514_string()
    logger.info("verified certificate key pair for %s", subject)
    return CertificatePreflightResult(
        certificate_pem=_job_decode_pem(certificate_bytes, label="certificate"),
        private_key_pem=_job_decode_pem(private_key_bytes, label="private key"),
        subject=subject,
        not_valid_after_utc=leaf_certificate.not_valid_after_utc,
        chain_length=len(certificates),
    )


def _job_read_pem_file(path: str, label: str) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as error:
        raise CertificatePreflightError(f"could not load the pem encoded {label}, {error}") from error


def _job_decode_pem(payload: bytes, label: str) -> str:
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as error:
        raise CertificatePreflightError(f"the pem encoded {label} is not valid text, {error}") from error


def _job_public_key_der(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
