from __future__ import annotations
from typing import Any, Dict
import requests
import urllib3

import cert_info

# The server presents a self-signed certificate without subjectAltName, so
# chain/hostname verification is off; identity is checked by fingerprint.
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


class CertProbe:
    """Fetches the certificate summary a local selfsign server presents."""

    def __init__(self, base_url: str, timeout: float = 5):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def fetch(self) -> Dict[str, Any]:
        r = requests.get(self.base_url + "/api/cert", verify=False, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def matches(self, cert_path: str) -> bool:
        with open(cert_path, "rb") as f:
            local = cert_info.fingerprint(cert_info.load_certificate(f.read()))
        return self.fetch().get("fingerprint_sha256") == local
