from __future__ import annotations
import datetime, time
from typing import List, Optional, Tuple

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from selfsign_common import KEY_SIZE, PUBLIC_EXPONENT

# Self-signed certificate generation for local development.
#
# - Key: fresh RSA-2048 per call, PKCS#1 PEM, unencrypted
# - Serial: millisecond timestamp digits read as hex, so tools print the timestamp
# - Subject == issuer, signed with SHA-256
# - Extensions are fixed: not a CA, broad key usage, broad extended key usage


class CertGenError(Exception):
    """Base class for certificate generation failures."""


class KeyGenerationError(CertGenError):
    """The RSA key pair could not be generated."""


class SigningError(CertGenError):
    """The certificate could not be built or signed."""


def _now_ms() -> int:
    return int(time.time() * 1000)


def serial_from_ms(now_ms: int) -> int:
    """Serial whose hex form is the decimal millisecond timestamp."""
    return int(str(now_ms), 16)


def build_name(common_name: str,
               country_name: Optional[str] = None,
               state_name: Optional[str] = None,
               city_name: Optional[str] = None,
               org_name: Optional[str] = None,
               org_unit: Optional[str] = None) -> x509.Name:
    """Distinguished name in fixed order: CN, C, ST, L, O, OU.

    Empty or missing optional values are left out entirely.
    """
    attrs = [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
    optional = (
        (NameOID.COUNTRY_NAME, country_name),
        (NameOID.STATE_OR_PROVINCE_NAME, state_name),
        (NameOID.LOCALITY_NAME, city_name),
        (NameOID.ORGANIZATION_NAME, org_name),
        (NameOID.ORGANIZATIONAL_UNIT_NAME, org_unit),
    )
    for oid, value in optional:
        if value:
            attrs.append(x509.NameAttribute(oid, value))
    return x509.Name(attrs)


def build_extensions() -> List[x509.ExtensionType]:
    return [
        x509.BasicConstraints(ca=False, path_length=None),
        x509.KeyUsage(
            digital_signature=True,
            content_commitment=True,  # nonRepudiation
            key_encipherment=True,
            data_encipherment=True,
            key_agreement=False,
            key_cert_sign=True,
            crl_sign=False,
            encipher_only=False,
            decipher_only=False,
        ),
        x509.ExtendedKeyUsage([
            ExtendedKeyUsageOID.SERVER_AUTH,
            ExtendedKeyUsageOID.CLIENT_AUTH,
            ExtendedKeyUsageOID.CODE_SIGNING,
            ExtendedKeyUsageOID.EMAIL_PROTECTION,
            ExtendedKeyUsageOID.TIME_STAMPING,
        ]),
    ]


def _generate_key() -> rsa.RSAPrivateKey:
    try:
        return rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=KEY_SIZE)
    except Exception as e:
        raise KeyGenerationError(f"RSA key generation failed: {e}") from e


def generate(common_name: str,
             country_name: Optional[str] = None,
             state_name: Optional[str] = None,
             city_name: Optional[str] = None,
             org_name: Optional[str] = None,
             org_unit: Optional[str] = None,
             days: int = 365) -> Tuple[str, str]:
    """Create a key pair and a self-signed certificate for it.

    Returns ``(private_key_pem, certificate_pem)``. Inputs are not validated
    here; an empty common name or a non-positive ``days`` is the caller's
    problem.

    Raises KeyGenerationError or SigningError. Nothing is returned on failure.
    """
    key = _generate_key()

    now_ms = _now_ms()
    not_before = datetime.datetime.fromtimestamp(now_ms // 1000, tz=datetime.timezone.utc)

    try:
        not_after = not_before + datetime.timedelta(days=days)
        subject = issuer = build_name(common_name, country_name, state_name,
                                      city_name, org_name, org_unit)
        builder = x509.CertificateBuilder().subject_name(
            subject
        ).issuer_name(
            issuer
        ).public_key(
            key.public_key()
        ).serial_number(
            serial_from_ms(now_ms)
        ).not_valid_before(
            not_before
        ).not_valid_after(
            not_after
        )
        for ext in build_extensions():
            builder = builder.add_extension(ext, critical=False)
        cert = builder.sign(key, hashes.SHA256())
    except Exception as e:
        raise SigningError(f"certificate signing failed: {e}") from e

    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
    return key_pem, cert_pem
