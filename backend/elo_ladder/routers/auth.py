"""Caller identity as asserted by the upstream gateway.

Authentication happens before requests reach this service. The gateway
forwards the authenticated player id and role in headers, which are trusted
as-is.
"""

from fastapi import Depends, Header

from ..authorization import Actor, Role
from ..exceptions import http_problem

ACTOR_ID_HEADER = "X-Actor-Id"
ACTOR_ROLE_HEADER = "X-Actor-Role"


async def get_current_actor(
    actor_id: str | None = Header(None, alias=ACTOR_ID_HEADER),
    actor_role: str | None = Header(None, alias=ACTOR_ROLE_HEADER),
) -> Actor:
  raw_role = (actor_role or Role.PLAYER.value).strip().lower()
  try:
    role = Role(raw_role)
  except ValueError:
    raise http_problem(
        status_code=401,
        detail=f"unknown actor role '{actor_role}'",
        code="invalid_actor_role",
    )

  player_id = (actor_id or "").strip() or None
  if player_id is None and role is not Role.ADMIN:
    raise http_problem(
        status_code=401,
        detail="missing actor identity",
        code="missing_actor",
    )
  return Actor(player_id=player_id, role=role)


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
  if not actor.is_admin:
    raise http_problem(
        status_code=403,
        detail="forbidden",
        code="admin_forbidden",
    )
  return actor
