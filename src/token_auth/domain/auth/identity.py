"""Authenticated identity and issued token pair value objects."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

REGISTERED_CLAIMS = frozenset({"sub", "iat", "exp", "nbf", "typ", "jti", "iss", "aud"})


@dataclass(frozen=True)
class Identity:
    """Subject identifier plus extra claims carried for downstream authorization."""

    subject: str
    claims: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.subject, str) or not self.subject.strip():
            raise ValueError("identity subject cannot be blank")
        reserved = REGISTERED_CLAIMS.intersection(self.claims)
        if reserved:
            raise ValueError(f"identity claims use reserved names: {sorted(reserved)}")
        object.__setattr__(self, "claims", MappingProxyType(_json_form(self.claims)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Identity):
            return NotImplemented
        return self.subject == other.subject and dict(self.claims) == dict(other.claims)

    def __hash__(self) -> int:
        return hash(self.subject)


def _json_form(claims: Mapping[str, Any]) -> dict[str, Any]:
    """Return claims as they read back after a JSON round trip (tuples become lists)."""

    try:
        return json.loads(json.dumps(dict(claims)))
    except (TypeError, ValueError):
        # Kept as given; minting a token for them fails with TokenEncodingError.
        return dict(claims)


@dataclass(frozen=True)
class TokenPair:
    """Raw access and refresh token values handed to the transport layer."""

    access_token: str
    refresh_token: str
