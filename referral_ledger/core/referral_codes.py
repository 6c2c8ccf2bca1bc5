from __future__ import annotations

import re
import secrets
from collections.abc import Collection

REFERRAL_CODE_RE = re.compile(r"^[A-Z0-9]{3,16}$")
CODE_PREFIX_MAX_LENGTH = 6
FALLBACK_CODE_PREFIX = "REF"
MAX_GENERATION_ATTEMPTS = 100


class ReferralCodeExhaustedError(Exception):
    pass


def normalize_referral_code(code: str) -> str:
    return code.strip().upper()


def build_code_prefix(display_name: str | None) -> str:
    """Upper-cased alphanumerics of the display name, capped at six chars."""
    cleaned = re.sub(r"[^A-Z0-9]", "", (display_name or "").upper())
    return cleaned[:CODE_PREFIX_MAX_LENGTH] or FALLBACK_CODE_PREFIX


def _with_digits(prefix: str, digits: int) -> str:
    return f"{prefix}{secrets.randbelow(10**digits):0{digits}d}"


def generate_referral_code(
    display_name: str | None,
    *,
    taken_codes: Collection[str] = (),
    max_attempts: int = MAX_GENERATION_ATTEMPTS,
) -> str:
    """Builds a name-based code: prefix + 2 digits, then prefix + 3 digits on collision."""
    prefix = build_code_prefix(display_name)
    taken = {normalize_referral_code(code) for code in taken_codes}

    code = _with_digits(prefix, 2)
    attempts = 0
    while code in taken:
        if attempts >= max_attempts:
            raise ReferralCodeExhaustedError(f"no free referral code for prefix {prefix}")
        code = _with_digits(prefix, 3)
        attempts += 1
    return code
