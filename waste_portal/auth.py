from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Request, status


class Role(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"


@dataclass
class Principal:
    id: int
    username: str
    role: Role
    first_name: str
    last_name: str
    active: bool

    @property
    def display_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip() or self.username


def get_current_principal(request: Request) -> Principal:
    principal = getattr(request.state, "principal", None)
    if not principal:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    if not principal.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
    return principal


def get_optional_principal(request: Request) -> Principal | None:
    principal = getattr(request.state, "principal", None)
    if principal is None or not principal.active:
        return None
    return principal


def is_admin_role(role: Role) -> bool:
    return role == Role.ADMIN


def require_role(*allowed: Role):
    def _dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN)
        return principal

    return _dep
