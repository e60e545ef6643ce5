"""Pseudonymization — session salt derivation and identity hashing.

Invariants:
    - derive_session_salt is a pure HMAC-SHA256 over "<class_id>:<session_start_iso>"
    - Same (secret, class, start) always yields the same salt; different starts yield
      different salts (and therefore different pseudonyms for the same token)
    - compute_pseudonym is SHA-256 over raw_token + salt_hex, prefixed with "0x"
    - Neither function raises; an empty secret is allowed (degraded mode is
      reported by config.collect_configuration_warnings, not here)

Design Decisions:
    - Hex-encoded salt: the same string devices receive from GET /session/salt,
      so a device and the server concatenate identical text
    - Raw token concatenated as given (no case folding): devices send the card
      UID exactly as the roster stores it
"""

import hashlib
import hmac
import re

from eduair.core.domain_types import Pseudonym, RawIdentityToken, SessionSalt

PSEUDONYM_PREFIX = "0x"
PSEUDONYM_LENGTH = len(PSEUDONYM_PREFIX) + 64
_PSEUDONYM_RE = re.compile(r"0x[0-9a-fA-F]{64}")


def sha256_hex(data: str) -> str:
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def hmac_sha256_hex(secret: str, data: str) -> str:
    return hmac.new(
        secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256,
    ).hexdigest()


def derive_session_salt(
    secret: str, class_id: str, session_start_iso: str,
) -> SessionSalt:
    """Deterministic per-(class, session start) salt keyed by the server secret."""
    return SessionSalt(hmac_sha256_hex(secret, f"{class_id}:{session_start_iso}"))


def compute_pseudonym(raw_token: RawIdentityToken | str, salt: SessionSalt | str) -> Pseudonym:
    """One-way session-scoped pseudonym for a raw identity token."""
    return Pseudonym(PSEUDONYM_PREFIX + sha256_hex(f"{raw_token}{salt}"))


def is_pseudonym(value: str) -> bool:
    """True if value has the shape produced by compute_pseudonym."""
    return _PSEUDONYM_RE.fullmatch(value) is not None
