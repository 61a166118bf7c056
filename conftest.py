import os
import sys
import tempfile
from pathlib import Path

REPO_ROOT = Path(__file__).parent

# Add the backend directory to sys.path so imports work without an install
BACKEND_PATH = REPO_ROOT / "fastapi-backend"
if str(BACKEND_PATH) not in sys.path:
    sys.path.insert(0, str(BACKEND_PATH))

# Set environment variables BEFORE importing app modules: the module-level
# engine and cached settings read them once.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="photoalbum_tests_"))
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_ROOT / 'test.db'}"
os.environ["STORAGE_PROVIDER"] = "local"
os.environ["UPLOAD_PATH"] = str(_TEST_ROOT / "uploads")
os.environ.pop("SENTRY_DSN", None)
