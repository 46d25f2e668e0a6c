"""HTTP basic authentication of the platform."""

import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from crossplane_broker.config.schema import BrokerConfig

security = HTTPBasic(realm="crossplane-service-broker")

BASIC_CREDENTIALS = Depends(security)


def verify_credentials(request: Request, credentials: HTTPBasicCredentials = BASIC_CREDENTIALS) -> str:
    """Check the basic auth credentials against the configured ones."""
    config: BrokerConfig = request.app.state.config
    user_ok = secrets.compare_digest(credentials.username.encode("utf-8"), config.username.encode("utf-8"))
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"),
        config.password.get_secret_value().encode("utf-8"),
    )
    if not (user_ok and password_ok):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username
