"""Load environment variables early for the FastAPI app.

For local dev, loads a .env.dev file. In staging and prod, env vars are
injected by the platform, so no .env file is loaded.
"""

import os
import sys
from dotenv import load_dotenv

# Required environment variables that must be set for the app to run.
# If any are missing, the app will fail to start with a clear error message.
REQUIRED_ENV_VARS = [
    "DATABASE_URL",
    "GOOGLE_CLIENT_ID",
    "GOOGLE_CLIENT_SECRET",
    "GOOGLE_REDIRECT_URI",
    "FRONTEND_URL",
]

# Optional settings and where they are read:
#   LOG_LEVEL                 questionbank.app.app
#   SESSION_COOKIE_SECURE     questionbank.app.session
#   SESSION_COOKIE_SAMESITE   questionbank.app.session
#   REFRESH_PROFILE_ON_LOGIN  questionbank.db.users


def validate_required_env_vars() -> None:
    """Validate that all required environment variables are set.

    Raises:
        SystemExit: If any required environment variables are missing.
    """
    missing = [var for var in REQUIRED_ENV_VARS if not os.getenv(var)]
    if missing:
        print(
            f"ERROR: Missing required environment variables: {', '.join(missing)}",
            file=sys.stderr,
        )
        print(
            "Please set these variables in your .env.dev file or environment.",
            file=sys.stderr,
        )
        sys.exit(1)


env = os.getenv("ENV", "dev")
if env in ("staging", "prod"):
    print(f"Running in {env} environment (env vars injected by the platform)")
elif env == "dev":
    print("Loading environment variables from .env.dev")
    load_dotenv(".env.dev", verbose=True)
else:
    raise ValueError(f"Invalid ENV value: {env}. Must be 'dev', 'staging', or 'prod'.")

validate_required_env_vars()
