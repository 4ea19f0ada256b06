"""Who may drive which match transition.

The engine never looks up roles. Callers build a :class:`Verdict` with
:func:`decide` (or :meth:`Verdict.system` for internal jobs) and hand it to
the engine, which only checks that it grants the operation being performed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .exceptions import Forbidden


class Capability(str, Enum):
    REPORT = "report"
    CONFIRM = "confirm"
    REJECT = "reject"
    CANCEL = "cancel"
    DELETE = "delete"
    RUN_SWEEP = "run_sweep"


class Role(str, Enum):
    PLAYER = "player"
    ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    player_id: str | None
    role: Role = Role.PLAYER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


@dataclass(frozen=True)
class Parties:
    """Player ids on each side of a match."""

    side1: frozenset[str] = field(default_factory=frozenset)
    side2: frozenset[str] = field(default_factory=frozenset)

    @property
    def everyone(self) -> frozenset[str]:
        return self.side1 | self.side2


@dataclass(frozen=True)
class Verdict:
    capability: Capability
    allowed: bool
    reason: str | None = None

    @classmethod
    def system(cls, capability: Capability) -> "Verdict":
        return cls(capability, True, "system")


_ADMIN_ONLY = {Capability.CANCEL, Capability.DELETE, Capability.RUN_SWEEP}


def decide(
    actor: Actor, capability: Capability, parties: Parties | None = None
) -> Verdict:
    if actor.is_admin:
        return Verdict(capability, True, "admin")
    if capability in _ADMIN_ONLY:
        return Verdict(capability, False, f"only an admin may {capability.value}")

    parties = parties or Parties()
    if capability is Capability.REPORT:
        if actor.player_id in parties.everyone:
            return Verdict(capability, True, "participant")
        return Verdict(capability, False, "only a participant may report a match")

    # confirm / reject belong to the side that did not report the result
    if actor.player_id in parties.side2:
        return Verdict(capability, True, "second party")
    return Verdict(
        capability, False, f"only the second party or an admin may {capability.value}"
    )


def require(verdict: Verdict | None, capability: Capability) -> None:
    """Raise :class:`Forbidden` unless ``verdict`` grants ``capability``.

    ``None`` means a trusted in-process caller.
    """

    if verdict is None:
        return
    if verdict.capability is not capability:
        raise Forbidden(
            f"verdict for {verdict.capability.value} does not cover {capability.value}"
        )
    if not verdict.allowed:
        raise Forbidden(verdict.reason or "forbidden")
