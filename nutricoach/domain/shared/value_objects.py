"""
Shared value objects.

Immutable, validated domain primitives.
"""

from __future__ import annotations

import secrets
import string
import time

from pydantic import BaseModel, ConfigDict, Field, field_validator

ANONYMOUS_USER_ID = "anonymous"

_BASE36 = string.digits + string.ascii_lowercase


class UserId(BaseModel):
    """
    User ID value object.

    Example:
        >>> user_id = UserId(value="user_123")
        >>> assert str(user_id) == "user_123"
        >>> assert UserId.anonymous().is_anonymous()
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., min_length=1, description="User identifier")

    @field_validator("value")
    @classmethod
    def not_empty(cls, v: str) -> str:
        """Ensure not empty or whitespace."""
        if not v.strip():
            raise ValueError("UserId cannot be empty or whitespace")
        return v.strip()

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"UserId('{self.value}')"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    def is_anonymous(self) -> bool:
        """True for the fallback identity used when nobody is signed in."""
        return self.value == ANONYMOUS_USER_ID

    @classmethod
    def from_string(cls, s: str) -> UserId:
        """Create from string."""
        return cls(value=s)

    @classmethod
    def anonymous(cls) -> UserId:
        """Fallback identity."""
        return cls(value=ANONYMOUS_USER_ID)


class ActionId(BaseModel):
    """
    Pending action ID value object.

    Format: "action_<epoch_ms>_<9 base36 chars>". The millisecond prefix
    keeps ids roughly creation-ordered; the suffix keeps them unique.

    Example:
        >>> action_id = ActionId.generate()
        >>> assert action_id.value.startswith("action_")
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(
        ...,
        pattern=r"^action_\d+_[a-z0-9]{9}$",
        description="Pending action identifier",
    )

    def __str__(self) -> str:
        """String representation."""
        return self.value

    def __repr__(self) -> str:
        """Debug representation."""
        return f"ActionId('{self.value}')"

    def __hash__(self) -> int:
        """Allow use as dict key."""
        return hash(self.value)

    @classmethod
    def generate(cls) -> ActionId:
        """Generate a fresh action ID."""
        millis = int(time.time() * 1000)
        suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
        return cls(value=f"action_{millis}_{suffix}")

    @classmethod
    def from_string(cls, s: str) -> ActionId:
        """Create from string."""
        return cls(value=s)
