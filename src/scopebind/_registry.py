from __future__ import annotations

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import Iterable

    from ._keys import ServiceKey
    from ._registration import Registration


class Registry:
    """Frozen lookup from service key to the registrations exposing it.

    Registrations are kept in registration order per key; the last one is the
    default for that key. A registry may be layered over a parent registry
    (child scope registrations), in which case local registrations mask the
    parent's.
    """

    def __init__(self, registrations: Iterable[Registration], *, parent: Registry | None = None) -> None:
        self._registrations = tuple(registrations)
        self._parent = parent
        self._ids = frozenset(r.id for r in self._registrations)

        by_key: dict[ServiceKey, list[Registration]] = {}
        for registration in self._registrations:
            for key in registration.keys:
                by_key.setdefault(key, []).append(registration)
        self._by_key = {key: tuple(regs) for key, regs in by_key.items()}

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return self._registrations

    def lookup(self, key: ServiceKey) -> Registration | None:
        local = self._by_key.get(key)
        if local:
            return local[-1]
        if self._parent is not None:
            return self._parent.lookup(key)
        return None

    def lookup_all(self, key: ServiceKey) -> tuple[Registration, ...]:
        inherited = self._parent.lookup_all(key) if self._parent is not None else ()
        return inherited + self._by_key.get(key, ())

    def knows(self, registration_id: int) -> bool:
        if registration_id in self._ids:
            return True
        return self._parent is not None and self._parent.knows(registration_id)

    def __contains__(self, key: ServiceKey) -> bool:
        return self.lookup(key) is not None

    def __len__(self) -> int:
        return len(self._registrations)
