from __future__ import annotations
import json
from typing import Any, Dict, List, Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.x509.oid import ExtendedKeyUsageOID
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, rsa

PemData = Union[str, bytes]

_EKU_NAMES = {
    ExtendedKeyUsageOID.SERVER_AUTH: "serverAuth",
    ExtendedKeyUsageOID.CLIENT_AUTH: "clientAuth",
    ExtendedKeyUsageOID.CODE_SIGNING: "codeSigning",
    ExtendedKeyUsageOID.EMAIL_PROTECTION: "emailProtection",
    ExtendedKeyUsageOID.TIME_STAMPING: "timeStamping",
}

_KEY_USAGE_FLAGS = (
    ("digital_signature", "digitalSignature"),
    ("content_commitment", "nonRepudiation"),
    ("key_encipherment", "keyEncipherment"),
    ("data_encipherment", "dataEncipherment"),
    ("key_agreement", "keyAgreement"),
    ("key_cert_sign", "keyCertSign"),
    ("crl_sign", "cRLSign"),
)


def _as_bytes(pem: PemData) -> bytes:
    return pem.encode("ascii") if isinstance(pem, str) else pem


def load_certificate(pem: PemData) -> x509.Certificate:
    return x509.load_pem_x509_certificate(_as_bytes(pem))


def load_private_key(pem: PemData):
    return serialization.load_pem_private_key(_as_bytes(pem), password=None)


def fingerprint(cert: x509.Certificate) -> str:
    return cert.fingerprint(hashes.SHA256()).hex(":").upper()


def key_matches(private_key_pem: PemData, certificate_pem: PemData) -> bool:
    """True when the private key is the one the certificate certifies."""
    key = load_private_key(private_key_pem)
    cert = load_certificate(certificate_pem)
    return key.public_key().public_numbers() == cert.public_key().public_numbers()


def is_self_signed(cert: x509.Certificate) -> bool:
    try:
        cert.verify_directly_issued_by(cert)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True


def _name_pairs(name: x509.Name) -> List[List[str]]:
    return [[attr.rfc4514_attribute_name, attr.value] for attr in name]


def _key_type(pub) -> str:
    for cls, label in ((rsa.RSAPublicKey, "RSA"), (ec.EllipticCurvePublicKey, "EC"),
                       (ed25519.Ed25519PublicKey, "Ed25519"), (ed448.Ed448PublicKey, "Ed448")):
        if isinstance(pub, cls):
            return label
    return type(pub).__name__


def _extension(cert: x509.Certificate, ext_type):
    try:
        return cert.extensions.get_extension_for_class(ext_type).value
    except x509.ExtensionNotFound:
        return None


def describe(certificate_pem: PemData) -> Dict[str, Any]:
    """JSON-friendly summary of a PEM certificate."""
    cert = load_certificate(certificate_pem)
    not_before = cert.not_valid_before_utc
    not_after = cert.not_valid_after_utc
    pub = cert.public_key()

    info: Dict[str, Any] = {
        "subject": _name_pairs(cert.subject),
        "issuer": _name_pairs(cert.issuer),
        "self_signed": is_self_signed(cert),
        "serial_number": format(cert.serial_number, "X"),
        "not_before": not_before.isoformat(),
        "not_after": not_after.isoformat(),
        "days": (not_after - not_before).days,
        "key_type": _key_type(pub),
        "key_size": getattr(pub, "key_size", None),
        "signature_hash": cert.signature_hash_algorithm.name if cert.signature_hash_algorithm else None,
        "fingerprint_sha256": fingerprint(cert),
        "basic_constraints": None,
        "key_usage": [],
        "ext_key_usage": [],
    }

    bc = _extension(cert, x509.BasicConstraints)
    if bc is not None:
        info["basic_constraints"] = {"ca": bc.ca}

    ku = _extension(cert, x509.KeyUsage)
    if ku is not None:
        info["key_usage"] = sorted(label for attr, label in _KEY_USAGE_FLAGS if getattr(ku, attr))

    eku = _extension(cert, x509.ExtendedKeyUsage)
    if eku is not None:
        info["ext_key_usage"] = [_EKU_NAMES.get(oid, oid.dotted_string) for oid in eku]

    return info


def encode(msg: Dict[str, Any]) -> bytes:
    return json.dumps(msg, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def decode(raw: bytes) -> Dict[str, Any]:
    return json.loads(raw.decode("utf-8"))
