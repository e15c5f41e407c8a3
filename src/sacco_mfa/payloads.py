"""Request body validation for the MFA verify endpoint."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .types import Factor


class MfaVerifyPayload(BaseModel):
    """Body of an MFA verify request.

    Accepts the browser's camelCase ``rememberDevice`` as well as
    ``remember_device``.

    Example:
        ```python
        payload = MfaVerifyPayload.model_validate(await request.json())
        result = await flow.verify_payload(user_id, payload, ip_address=ip)
        ```
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    token: str = Field(min_length=1)
    method: Factor | None = None
    remember_device: bool = Field(default=False, alias="rememberDevice")


__all__: list[str] = ["MfaVerifyPayload"]
