from __future__ import annotations
import argparse
from flask import Flask, jsonify

import cert_info
from selfsign_common import DEFAULT_HOST, DEFAULT_PORT

app = Flask(__name__)
SERVED_CERT: str | None = None  # PEM of the certificate the server presents


def load_served_cert(cert_path: str) -> str:
    global SERVED_CERT
    with open(cert_path, "r", encoding="ascii") as f:
        SERVED_CERT = f.read()
    return SERVED_CERT


@app.get("/")
def index():
    return jsonify({"ok": True, "message": "selfsign local HTTPS server"})


@app.get("/api/cert")
def api_cert():
    if SERVED_CERT is None:
        return jsonify({"error": "no certificate loaded"}), 503
    return jsonify(cert_info.describe(SERVED_CERT))


def run(cert: str, key: str, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT) -> None:
    with open(key, "rb") as f:
        key_pem = f.read()
    if not cert_info.key_matches(key_pem, load_served_cert(cert)):
        raise ValueError(f"private key {key} does not match certificate {cert}")

    print(f"[HTTPS server] https://{host}:{port}")
    print(f"[INFO] Certificate fingerprint: {cert_info.fingerprint(cert_info.load_certificate(SERVED_CERT))}")
    app.run(host=host, port=port, ssl_context=(cert, key), threaded=True)


def main():
    apg = argparse.ArgumentParser(description="Serve a generated certificate over HTTPS")
    apg.add_argument("--host", default=DEFAULT_HOST)
    apg.add_argument("--port", type=int, default=DEFAULT_PORT)
    apg.add_argument("--cert", required=True)
    apg.add_argument("--key", required=True)
    args = apg.parse_args()
    run(args.cert, args.key, args.host, args.port)


if __name__ == "__main__":
    main()
