from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from dashboard.app.services.api_client import ApiSession, BackendClient


def get_api_session(
    authorization: str | None = Header(None),
    x_refresh_token: str | None = Header(None),
) -> ApiSession:
    """Build the caller's backend session from the forwarded bearer token."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return ApiSession(access_token=token.strip(), refresh_token=x_refresh_token)


def get_backend_client(
    session: ApiSession = Depends(get_api_session),
) -> BackendClient:
    return BackendClient(session)
