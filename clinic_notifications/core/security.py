import uuid
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel
from clinic_notifications.core.config import settings

http_bearer = HTTPBearer(auto_error=False)

NOTIFY_READ = "notify:read"
NOTIFY_WRITE = "notify:write"

class Principal(BaseModel):
    user_id: uuid.UUID
    clinic_id: uuid.UUID
    roles: list[str] = []
    scopes: list[str] = []

    def has_scope(self, scope: str) -> bool:
        # "notify:*" grants every notify scope, "*" grants everything
        prefix = scope.split(":", 1)[0]
        return scope in self.scopes or f"{prefix}:*" in self.scopes or "*" in self.scopes

def _decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG], audience=settings.REQUIRED_AUDIENCE)
        return payload
    except JWTError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}")

def _token_scopes(data: dict) -> list[str]:
    # accepts a "scopes" list or an OAuth-style space separated "scope" string
    if isinstance(data.get("scopes"), list):
        return [str(s) for s in data["scopes"]]
    return str(data.get("scope") or "").split()

async def get_principal(creds: HTTPAuthorizationCredentials | None = Depends(http_bearer)) -> Principal:
    # In local dev a missing token acts as staff of the default clinic
    if creds is None and settings.ENV == "local":
        return Principal(user_id=uuid.uuid4(), clinic_id=uuid.UUID(settings.DEFAULT_CLINIC_ID),
                         roles=["admin"], scopes=[NOTIFY_READ, NOTIFY_WRITE])
    if creds is None:
        raise HTTPException(status_code=401, detail="Missing token")

    data = _decode_token(creds.credentials)
    clinic = data.get("clinic_id")
    if not clinic and settings.ENV != "local":
        raise HTTPException(status_code=401, detail="Token is not bound to a clinic")
    try:
        user_id = uuid.UUID(str(data.get("sub") or data.get("user_id")))
        clinic_id = uuid.UUID(str(clinic or settings.DEFAULT_CLINIC_ID))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token subject or clinic")
    return Principal(user_id=user_id, clinic_id=clinic_id, roles=data.get("roles", []), scopes=_token_scopes(data))

def require_scopes(*needed: str):
    def dep(principal: Principal = Depends(get_principal)) -> Principal:
        if not all(principal.has_scope(s) for s in needed):
            raise HTTPException(status_code=403, detail="Insufficient scopes")
        return principal
    return dep
