from __future__ import annotations

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537

DEFAULT_COMMON_NAME = "selfsign.localhost"
DEFAULT_DAYS = 365
SUGGESTED_MAX_DAYS = 365

DEFAULT_KEYOUT = "private.key"
DEFAULT_OUT = "certificate_pub.crt"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 9443

ENV_NAME = "SELFSIGN_NAME"
ENV_DAYS = "SELFSIGN_DAYS"
