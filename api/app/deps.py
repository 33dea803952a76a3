from fastapi import Header, HTTPException

from . import config


def validate_admin_token(token: str | None, admin_token: str | None) -> None:
    if not admin_token or not token or token != admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")


def require_admin(x_admin_token: str | None = Header(default=None, alias="X-Admin-Token")) -> None:
    validate_admin_token(x_admin_token, config.ADMIN_TOKEN)


def parse_actor(raw_actor: str | None) -> str | None:
    if not raw_actor:
        return None
    value = raw_actor.strip()
    if not value:
        return None
    if len(value) > 100:
        raise HTTPException(status_code=400, detail="X-Actor must be 100 characters or fewer")
    return value
