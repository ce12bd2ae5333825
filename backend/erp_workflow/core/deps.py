from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from erp_workflow.core.identity import Actor
from erp_workflow.core.security import decode_token
from erp_workflow.models.enums import Role

bearer_scheme = HTTPBearer()


def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Actor:
    """Validate the bearer JWT and return the acting user (id, name, role)."""
    credentials_exc = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(credentials.credentials)
        if payload.get("type") != "access":
            raise credentials_exc
        actor_id: str = payload.get("sub")
        if not actor_id:
            raise credentials_exc
        role = Role(payload.get("role"))
    except (JWTError, ValueError):
        raise credentials_exc

    return Actor(id=actor_id, name=payload.get("name") or actor_id, role=role)


def require_role(*roles: Role):
    """Dependency factory: raises 403 if actor role not in allowed list."""
    def check(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role.value}' is not permitted for this action.",
            )
        return actor
    return check
