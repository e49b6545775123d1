"""Webhook signature verification."""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import TYPE_CHECKING

from webhook_mirror.entities.events import header_value

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

SHA256_HEADER = "X-Hub-Signature-256"
SHA1_HEADER = "X-Hub-Signature"
GITLAB_TOKEN_HEADER = "X-Gitlab-Token"


def _hmac_matches(secret: str, payload: bytes, signature: str, prefix: str, digest: str) -> bool:
    if not signature.startswith(prefix):
        logger.warning("Invalid signature format: %s", signature)
        return False

    expected_sig = signature[len(prefix):]
    computed = hmac.new(secret.encode(), payload, digest).hexdigest()
    return hmac.compare_digest(computed, expected_sig)


def verify_signature(secret: str | None, payload: bytes, headers: Mapping[str, str]) -> bool:
    """Check a request against the mapping's secret.

    Mappings without a secret accept every request. GitHub's sha256 header is
    preferred over the legacy sha1 one; GitLab sends the secret verbatim.
    """
    if not secret:
        return True

    signature = header_value(headers, SHA256_HEADER)
    if signature:
        return _hmac_matches(secret, payload, signature, "sha256=", "sha256")

    signature = header_value(headers, SHA1_HEADER)
    if signature:
        return _hmac_matches(secret, payload, signature, "sha1=", "sha1")

    token = header_value(headers, GITLAB_TOKEN_HEADER)
    if token:
        return hmac.compare_digest(token.encode(), secret.encode())

    logger.warning("Request carries no signature header")
    return False


def sign(secret: str, payload: bytes) -> str:
    """GitHub-style ``sha256=`` signature for ``payload``."""
    return "sha256=" + hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
