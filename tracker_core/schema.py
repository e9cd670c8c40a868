from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence, Tuple


@dataclass(frozen=True)
class HeaderCheck:
    missing: Tuple[str, ...] = ()
    extra: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.missing


def validate_headers(
    headers: Sequence[str],
    required: Iterable[str],
    optional: Iterable[str] = (),
) -> HeaderCheck:
    """Match header names exactly; column order is irrelevant."""
    present = {h.strip() for h in headers}
    required = list(required)
    known = set(required) | set(optional)
    missing = tuple(h for h in required if h not in present)
    extra = tuple(h.strip() for h in headers if h.strip() and h.strip() not in known)
    return HeaderCheck(missing=missing, extra=extra)
