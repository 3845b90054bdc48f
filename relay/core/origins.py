"""Static caller-origin allow-list."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

LOCAL_DEV_ORIGIN = re.compile(r"^http://(?:localhost|127\.0\.0\.1)(?::\d{1,5})?$")


@dataclass(frozen=True)
class OriginPolicy:
    """Exact-match domains plus any local development port."""

    allowed: FrozenSet[str] = field(default_factory=frozenset)
    allow_local_dev: bool = True

    @classmethod
    def from_list(cls, origins: Iterable[str], allow_local_dev: bool = True) -> "OriginPolicy":
        cleaned = frozenset(o.strip().rstrip("/") for o in origins if o and o.strip())
        return cls(allowed=cleaned, allow_local_dev=allow_local_dev)

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        if origin in self.allowed:
            return True
        return self.allow_local_dev and bool(LOCAL_DEV_ORIGIN.match(origin))


def parse_origin_list(raw: str) -> list[str]:
    """Split a comma separated ``ALLOWED_ORIGINS`` value."""
    return [part.strip() for part in (raw or "").split(",") if part.strip()]
