from __future__ import annotations
import argparse, os, sys
from typing import List, Optional

import requests

import cert_info
from certgen import CertGenError, generate
from selfsign_common import (DEFAULT_COMMON_NAME, DEFAULT_DAYS, DEFAULT_HOST, DEFAULT_KEYOUT, DEFAULT_OUT,
                             DEFAULT_PORT, ENV_DAYS, ENV_NAME, SUGGESTED_MAX_DAYS)

DESCRIPTION = """Generate a new private/public key pair
Generate a self-signed certificate to enable https:// on localhost or signing jwt payloads.
"""


def _error(msg: str) -> int:
    print(f"ERROR: {msg}", file=sys.stderr)
    return 1


def _write_private(path: str, data: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, "w", encoding="ascii") as f:
        f.write(data)


def _write_public(path: str, data: str) -> None:
    with open(path, "x", encoding="ascii") as f:
        f.write(data)


def validate_generate_args(args: argparse.Namespace) -> None:
    if not args.name:
        raise ValueError("--name must not be empty")
    if args.days <= 0:
        raise ValueError("--days must be a positive number of days")
    if args.country and len(args.country) != 2:
        raise ValueError("--country must be a two letter country code")


def cmd_generate(args: argparse.Namespace) -> int:
    if os.path.exists(args.keyout):
        return _error("--keyout file exists: " + args.keyout)
    if os.path.exists(args.out):
        return _error("--out file exists: " + args.out)

    try:
        validate_generate_args(args)
    except ValueError as e:
        return _error(str(e))

    if args.days > SUGGESTED_MAX_DAYS:
        print(f"[WARN] --days {args.days} exceeds the suggested maximum of {SUGGESTED_MAX_DAYS}",
              file=sys.stderr)

    try:
        private_key, cert = generate(args.name, args.country, args.state, args.locality,
                                     args.organization, args.unit, args.days)
        _write_private(args.keyout, private_key)
    except (CertGenError, OSError) as e:
        return _error(str(e))

    try:
        _write_public(args.out, cert)
    except OSError as e:
        # leave no key without its certificate
        os.remove(args.keyout)
        return _error(str(e))

    print("success: generated certificate")
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    try:
        with open(args.cert, "rb") as f:
            info = cert_info.describe(f.read())
    except (OSError, ValueError) as e:
        return _error(f"cannot read certificate {args.cert}: {e}")

    if args.json:
        print(cert_info.encode(info).decode("utf-8"))
        return 0

    print("subject:     " + ", ".join(f"{k}={v}" for k, v in info["subject"]))
    print("issuer:      " + ", ".join(f"{k}={v}" for k, v in info["issuer"]))
    print(f"self-signed: {info['self_signed']}")
    print(f"serial:      {info['serial_number']}")
    print(f"valid:       {info['not_before']} -> {info['not_after']} ({info['days']} days)")
    key_desc = info["key_type"] if info["key_size"] is None else f"{info['key_type']} {info['key_size']}"
    print(f"key:         {key_desc}, signed with {info['signature_hash'] or info['key_type']}")
    print(f"sha256:      {info['fingerprint_sha256']}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import selfsign_server
    try:
        selfsign_server.run(args.cert, args.key, args.host, args.port)
    except (OSError, ValueError) as e:
        return _error(str(e))
    return 0


def cmd_probe(args: argparse.Namespace) -> int:
    from selfsign_client import CertProbe
    probe = CertProbe(args.url)
    try:
        ok = probe.matches(args.cert)
    except (requests.RequestException, OSError, ValueError) as e:
        return _error(f"probe failed: {e}")

    if ok:
        print(f"[INFO] {args.url} presents {args.cert}")
        return 0
    print(f"[INFO] {args.url} presents a different certificate than {args.cert}")
    return 1


def build_parser() -> argparse.ArgumentParser:
    apg = argparse.ArgumentParser(prog="selfsign", description=DESCRIPTION,
                                  formatter_class=argparse.RawDescriptionHelpFormatter)
    sub = apg.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="generate a private key and self-signed certificate",
                         description=DESCRIPTION, formatter_class=argparse.RawDescriptionHelpFormatter)
    gen.add_argument("--keyout", default=DEFAULT_KEYOUT, help="file to send the key to")
    gen.add_argument("--out", default=DEFAULT_OUT, help="output file")
    gen.add_argument("-n", "--name", default=os.environ.get(ENV_NAME, DEFAULT_COMMON_NAME),
                     help="Common Name: typically a host domain name, like www.mysite.com")
    gen.add_argument("-c", "--country", help="Country Name")
    gen.add_argument("-s", "--state", help="State or Province")
    gen.add_argument("-l", "--locality", help="Locality, or city name")
    gen.add_argument("-o", "--organization", help="Organization name")
    gen.add_argument("-u", "--unit", help="Organizational unit or department")
    gen.add_argument("--days", type=int, default=os.environ.get(ENV_DAYS, str(DEFAULT_DAYS)),
                     help=f"Number of days the certificate should be valid for. (Max {SUGGESTED_MAX_DAYS})")
    gen.set_defaults(func=cmd_generate)

    info = sub.add_parser("info", help="show the contents of a PEM certificate")
    info.add_argument("cert")
    info.add_argument("--json", action="store_true", help="print the summary as JSON")
    info.set_defaults(func=cmd_info)

    serve = sub.add_parser("serve", help="serve a certificate/key pair over HTTPS")
    serve.add_argument("--host", default=DEFAULT_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)
    serve.add_argument("--cert", default=DEFAULT_OUT)
    serve.add_argument("--key", default=DEFAULT_KEYOUT)
    serve.set_defaults(func=cmd_serve)

    probe = sub.add_parser("probe", help="check that a local server presents a certificate")
    probe.add_argument("--url", default=f"https://{DEFAULT_HOST}:{DEFAULT_PORT}")
    probe.add_argument("--cert", default=DEFAULT_OUT)
    probe.set_defaults(func=cmd_probe)

    return apg


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
