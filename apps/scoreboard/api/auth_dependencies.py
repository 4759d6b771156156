"""
Admin authorization for mutating routes.

A single shared secret (ADMIN_PASSWORD) gates tournament creation and
game deletion.
"""

import os
import secrets
from typing import Optional
from fastapi import HTTPException, status
from dotenv import load_dotenv

load_dotenv()


def get_admin_password() -> Optional[str]:
    """Read the shared admin secret from the environment."""
    return os.getenv("ADMIN_PASSWORD")


def verify_admin_password(password: Optional[str]) -> None:
    """
    Check a submitted admin password.

    Raises:
        HTTPException: 400 if no password was submitted, 500 if the server
            has no password configured, 401 if it does not match
    """
    if not password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admin password is required",
        )

    admin_password = get_admin_password()
    if not admin_password:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server missing ADMIN_PASSWORD",
        )

    if not secrets.compare_digest(password.encode(), admin_password.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )
