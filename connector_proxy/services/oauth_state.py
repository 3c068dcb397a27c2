"""Signed OAuth ``state`` values.

Format: ``{integration_id}_{user_id}_{unix_ts}.{hmac}``. Integration ids never
contain ``_`` and the timestamp is all digits, so the provider is split off at
the first ``_`` and the timestamp at the last one; user ids may contain ``_``.
"""

from dataclasses import dataclass
from typing import Optional
import re
import time

from connector_proxy.core.errors import OAuthStateError
from connector_proxy.utils.crypto import sign, verify_signature

SIGNATURE_RE = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class OAuthState:
    integration_id: str
    user_id: str
    issued_at: int
    signature: Optional[str] = None

    @property
    def payload(self) -> str:
        return f"{self.integration_id}_{self.user_id}_{self.issued_at}"

    @classmethod
    def parse(cls, value: str) -> "OAuthState":
        """Split a state string into its parts; does not check the signature."""
        payload, signature = value, None
        head, dot, tail = value.rpartition(".")
        if dot and SIGNATURE_RE.match(tail):
            payload, signature = head, tail

        integration_id, sep, rest = payload.partition("_")
        user_id, sep2, issued_at = rest.rpartition("_")
        if not (integration_id and sep and user_id and sep2 and issued_at.isdigit()):
            raise OAuthStateError("Invalid OAuth state")

        return cls(integration_id, user_id, int(issued_at), signature)


class OAuthStateSigner:
    """Issues and verifies HMAC-signed states."""

    def __init__(self, secret: str, max_age: int = 600):
        self.secret = secret
        self.max_age = max_age

    def issue(self, integration_id: str, user_id: str, now: Optional[float] = None) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = OAuthState(integration_id, user_id, issued_at).payload
        return f"{payload}.{sign(payload, self.secret)}"

    def verify(self, value: str, now: Optional[float] = None) -> OAuthState:
        """Parse and authenticate a state; raises OAuthStateError."""
        state = OAuthState.parse(value)
        if not state.signature or not verify_signature(state.payload, state.signature, self.secret):
            raise OAuthStateError("OAuth state signature is invalid", state.integration_id)

        age = (now if now is not None else time.time()) - state.issued_at
        if age > self.max_age or age < -60:
            raise OAuthStateError("OAuth state has expired", state.integration_id)

        return state
