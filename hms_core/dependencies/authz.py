# hms_core/dependencies/authz.py
from enum import Enum as PyEnum
from typing import Iterable
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from hms_core.core.security import decode_token

# Tokens are issued by the accounts service; the URL is only advertised in OpenAPI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")


class RoleName(str, PyEnum):
    HOSPITAL_ADMIN = "HOSPITAL_ADMIN"
    DOCTOR = "DOCTOR"
    PHARMACIST = "PHARMACIST"
    PATIENT = "PATIENT"


class CurrentActor:
    """
    The authenticated caller, as described by the bearer token.

    - id:    token subject (user id)
    - roles: role names from the token's ``roles`` claim
    """

    def __init__(self, id: UUID, roles: set[str]):
        self.id = id
        self.roles = roles

    def has_any(self, roles: Iterable[RoleName]) -> bool:
        return any(r.value in self.roles for r in roles)


def get_current_actor(token: str = Depends(oauth2_scheme)) -> CurrentActor:
    """
    Dependency to resolve the caller from a JWT bearer token.
    """
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        )

    subject = payload.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    try:
        actor_id = UUID(str(subject))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
        )

    roles = payload.get("roles") or []
    return CurrentActor(id=actor_id, roles={str(r) for r in roles})


def require_roles(required_roles: Iterable[RoleName]):
    """
    Dependency factory for role-based access.

    Usage:

    @router.post("/dispense/{prescription_id}")
    def dispense(actor = Depends(require_roles([RoleName.PHARMACIST]))):
        ...

    Returns the current actor if they have at least one required role.
    """
    required = list(required_roles)

    def dependency(actor: CurrentActor = Depends(get_current_actor)) -> CurrentActor:
        if not actor.has_any(required):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role permissions.",
            )
        return actor

    return dependency
