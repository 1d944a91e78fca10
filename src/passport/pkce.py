"""PKCE (:rfc:`7636`) and ``state`` secret generation.

Everything here draws from :mod:`secrets`, the OS cryptographic random
source.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

CODE_CHALLENGE_METHOD = "S256"


def generate_pkce_pair() -> tuple[str, str]:
    """Generate a PKCE code_verifier and code_challenge (S256).

    Returns:
        A tuple of ``(code_verifier, code_challenge)``.
    """
    # RFC 7636: 43-128 characters from unreserved character set
    code_verifier = secrets.token_urlsafe(64)[:128]
    return code_verifier, code_challenge_for(code_verifier)


def code_challenge_for(code_verifier: str) -> str:
    """Derive the S256 challenge for *code_verifier*."""
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def generate_state() -> str:
    """Return a fresh, URL-safe anti-forgery ``state`` secret."""
    return secrets.token_urlsafe(32)


def fingerprint(secret: str) -> str:
    """Short SHA-256 fingerprint of *secret*, safe to put in log records."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()[:12]
