from .auth import (
    build_oauth_authorize_url,
    exchange_code_for_token,
)
from .userinfo import fetch_profile
from .models import GoogleToken, GoogleProfile

__all__ = [
    "build_oauth_authorize_url",
    "exchange_code_for_token",
    "fetch_profile",
    "GoogleToken",
    "GoogleProfile",
]
