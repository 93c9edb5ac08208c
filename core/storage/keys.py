from __future__ import annotations

import secrets
import string
import time

_TOKEN_ALPHABET = string.digits + string.ascii_lowercase
RANDOM_TOKEN_LENGTH = 13


def random_token(length: int = RANDOM_TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(length))


def key_extension(file_name: str) -> str:
    # Text after the last dot; a name without a dot is used whole.
    return file_name.rsplit(".", 1)[-1]


def build_storage_key(
    *,
    bucket_type: str,
    user_id: str,
    file_name: str,
    now_ms: int | None = None,
    token: str | None = None,
) -> str:
    """Return ``{bucket}/{user}/{timestamp}-{token}.{extension}``.

    Timestamp plus token makes collisions unlikely but not impossible; a
    collision overwrites the earlier object.
    """
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = token if token is not None else random_token()
    return f"{bucket_type}/{user_id}/{timestamp}-{suffix}.{key_extension(file_name)}"
