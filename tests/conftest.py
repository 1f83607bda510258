"""Test environment: in-memory SQLite, fixed JWT secret, cheap bcrypt rounds."""

import os

# Must be set before acquisitions.core.config is imported anywhere.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["APP_ENV"] = "dev"
os.environ["VERDICT_PROVIDER"] = "local"
os.environ["THROTTLE_DRY_RUN"] = "false"

from acquisitions.core import security  # noqa: E402

security.BCRYPT_ROUNDS = 4
