"""
Signed OAuth state: "<user_id>.<hex HMAC-SHA256 of user_id>".

The consent URL carries the local user id through Google to the callback.
Only a state signed with the server secret is accepted there.
"""
import hashlib
import hmac
from typing import Optional

SEPARATOR = "."


def _signature(user_id: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), user_id.encode("utf-8"), hashlib.sha256).hexdigest()


def sign_state(user_id: str, secret: str) -> str:
    if not secret:
        raise ValueError("A secret is required to sign OAuth state")
    return f"{user_id}{SEPARATOR}{_signature(user_id, secret)}"


def verify_state(state: Optional[str], secret: str) -> Optional[str]:
    """Return the user id of a correctly signed state, else None."""
    if not state or not secret or SEPARATOR not in state:
        return None
    user_id, _, signature = state.rpartition(SEPARATOR)
    if not user_id or not hmac.compare_digest(signature, _signature(user_id, secret)):
        return None
    return user_id
