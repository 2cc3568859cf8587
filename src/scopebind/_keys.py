from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ServiceKey:
    """Identity of a requested service: a contract plus an optional name."""

    contract: Any
    name: str | None = None

    def __str__(self) -> str:
        contract = getattr(self.contract, "__qualname__", repr(self.contract))
        if self.name is None:
            return contract
        return f"{contract}[{self.name!r}]"


def as_key(key_or_contract: Any) -> ServiceKey:
    if isinstance(key_or_contract, ServiceKey):
        return key_or_contract
    return ServiceKey(key_or_contract)
