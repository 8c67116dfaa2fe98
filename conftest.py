import os
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).parent

# Set environment variables BEFORE importing participium modules: auth
# refuses to load without a JWT secret and settings are cached per process.
os.environ["JWT_SECRET"] = "test-secret-key-for-pytest-only-12345"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{(REPO_ROOT / 'test.db').resolve()}"
os.environ["APP_ENV"] = "test"
os.environ["SMTP_HOST"] = "localhost"
os.environ["STRICT_ASSIGNEE_TRANSITIONS"] = "true"
os.environ.pop("SENTRY_DSN", None)

# Add the backend directory to sys.path so imports work without an install
BACKEND_PATH = REPO_ROOT / "fastapi-backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.append(str(BACKEND_PATH))
