# Bearer-token guard for tokens issued by the identity provider
from jose import jwt, JWTError
from fastapi import Header, HTTPException

from studyflow import config


def _decode_jwt_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def verify_token(authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.split(" ", 1)[1]
    # Decodes and checks expiration/signature
    payload = _decode_jwt_token(token)
    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Token has no subject")
    return payload
