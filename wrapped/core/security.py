from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from fastapi.security import HTTPBearer


bearer_scheme = HTTPBearer(
    auto_error=False,
    description="GitHub access token of the user whose year is wrapped.",
)

MISSING_TOKEN_DETAIL = "Authorization Bearer token is required"


def extract_github_token(credentials: HTTPAuthorizationCredentials | None) -> str:
    """Return the GitHub access token carried by the Bearer credentials.

    Raises:
        HTTPException: 401 if credentials are missing, not Bearer, or blank.
    """

    token = credentials.credentials.strip() if credentials is not None else ""
    if credentials is None or credentials.scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=401,
            detail=MISSING_TOKEN_DETAIL,
            headers={"WWW-Authenticate": "Bearer"},
        )

    return token
