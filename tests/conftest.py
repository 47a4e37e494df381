import datetime

import pytest

from cryptography import x509
from cryptography.x509.oid import NameOID
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from certgen import generate


@pytest.fixture(scope="session")
def full_pair():
    return generate("example.com", "US", "CA", "San Francisco", "Acme", "Eng", 365)


@pytest.fixture(scope="session")
def minimal_pair():
    return generate("test.local", "", "", "", "", "", 30)


@pytest.fixture
def pair_files(tmp_path, full_pair):
    key_pem, cert_pem = full_pair
    key_path = tmp_path / "private.key"
    cert_path = tmp_path / "certificate_pub.crt"
    key_path.write_text(key_pem)
    cert_path.write_text(cert_pem)
    return key_path, cert_path


@pytest.fixture(scope="session")
def ed25519_cert_pem():
    key = ed25519.Ed25519PrivateKey.generate()
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "ed.local")])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = x509.CertificateBuilder().subject_name(
        name
    ).issuer_name(
        name
    ).public_key(
        key.public_key()
    ).serial_number(
        x509.random_serial_number()
    ).not_valid_before(
        now
    ).not_valid_after(
        now + datetime.timedelta(days=10)
    ).sign(key, None)
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
