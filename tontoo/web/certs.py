"""Self-signed certificate material for HTTPS listeners."""

from __future__ import annotations

import datetime as dt
import logging
from pathlib import Path
from typing import Protocol, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

logger = logging.getLogger("tontoo.web")

KEY_FILE = "server.key"
CERT_FILE = "server.crt"


class CertificateGenerator(Protocol):
    def generate(self, key_path: Path, cert_path: Path, bits: int, days: int) -> None:
        ...


class SelfSignedCertificateGenerator:
    """Writes an RSA key and a ``CN=localhost`` certificate in PEM form."""

    def __init__(self, common_name: str = "localhost") -> None:
        self.common_name = common_name

    def generate(self, key_path: Path, cert_path: Path, bits: int, days: int) -> None:
        key = rsa.generate_private_key(public_exponent=65537, key_size=bits)
        Path(key_path).write_bytes(
            key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, self.common_name)])
        now = dt.datetime.now(dt.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + dt.timedelta(days=days))
            .add_extension(x509.SubjectAlternativeName([x509.DNSName(self.common_name)]), critical=False)
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .sign(key, hashes.SHA256())
        )
        Path(cert_path).write_bytes(cert.public_bytes(serialization.Encoding.PEM))


def ensure_certificate(
    ssl_dir: Path,
    generator: CertificateGenerator,
    *,
    bits: int,
    days: int,
) -> Tuple[Path, Path]:
    """
    Return ``(key_path, cert_path)`` under ``ssl_dir``, generating them once.

    Raises whatever the generator raises; callers degrade to HTTP only.
    """
    ssl_dir = Path(ssl_dir)
    ssl_dir.mkdir(parents=True, exist_ok=True)
    key_path = ssl_dir / KEY_FILE
    cert_path = ssl_dir / CERT_FILE
    if key_path.exists() and cert_path.exists():
        return key_path, cert_path
    logger.info("Generating self-signed SSL certificate (%d bits)...", bits)
    generator.generate(key_path, cert_path, bits, days)
    logger.info("SSL certificate successfully generated.")
    return key_path, cert_path


__all__ = ["CertificateGenerator", "SelfSignedCertificateGenerator", "ensure_certificate", "KEY_FILE", "CERT_FILE"]
