"""MFA observability helpers.

Usage:
    ```python
    from sacco_mfa.observability import MfaMetrics

    metrics = MfaMetrics()
    metrics.record_rate_limited("user")
    ```
"""

from __future__ import annotations

from .metrics import MfaMetrics

__all__: list[str] = ["MfaMetrics"]
