from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions.

    Domain exceptions are raised before anything is written, so the caller can
    act on them.
    """

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class NotFound(DomainException):
    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(
            status_code=404,
            title=f"{kind.capitalize()} not found",
            detail=f"{kind} '{ident}' not found",
            code=f"{kind.replace(' ', '_')}_not_found",
        )
        self.ident = ident


class PlayerNotFound(NotFound):
    def __init__(self, player_id: str) -> None:
        super().__init__("player", player_id)


class TeamNotFound(NotFound):
    def __init__(self, team_id: str) -> None:
        super().__init__("team", team_id)


class MatchNotFound(NotFound):
    def __init__(self, match_id: str, *, kind: str = "match") -> None:
        super().__init__(kind, match_id)


class InvalidTransition(DomainException):
    def __init__(self, match_id: str, status: str, expected: str = "pending") -> None:
        super().__init__(
            status_code=409,
            title="Invalid transition",
            detail=f"match '{match_id}' is {status}, expected {expected}",
            code="invalid_transition",
        )
        self.status = status


class InvalidWinner(DomainException):
    def __init__(self, winner_id: str) -> None:
        super().__init__(
            status_code=400,
            title="Invalid winner",
            detail=f"winner '{winner_id}' is not one of the two sides",
            code="invalid_winner",
        )


class DuplicateParty(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=400,
            title="Duplicate party",
            detail=detail,
            code="duplicate_party",
        )


class Forbidden(DomainException):
    def __init__(self, detail: str = "forbidden") -> None:
        super().__init__(
            status_code=403,
            title="Forbidden",
            detail=detail,
            code="forbidden",
        )


class PersistenceFailure(Exception):
    """The storage layer failed mid-transaction; nothing was committed."""

    status_code = 503
    code = "persistence_failure"

    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} failed; no changes were applied")
        self.operation = operation


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
