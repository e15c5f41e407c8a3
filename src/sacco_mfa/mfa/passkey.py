"""Passkey assertion payload handling."""

from __future__ import annotations

import base64
import json
from typing import Any


def parse_assertion_payload(token: str) -> dict[str, Any] | None:
    """Decode the assertion submitted as the MFA token.

    Browsers post either the raw ``AuthenticationResponseJSON`` or the same JSON
    base64-encoded.

    Returns:
        The assertion object, or None when neither form parses to an object.
    """
    candidates = [token]
    try:
        candidates.append(base64.b64decode(token, validate=True).decode("utf-8"))
    except ValueError:
        # Not base64; the raw form is still tried
        pass

    for candidate in candidates:
        try:
            payload = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(payload, dict):
            return payload
    return None


__all__: list[str] = ["parse_assertion_payload"]
