import os
import sys
import tempfile

# Set Env Vars BEFORE any imports to satisfy Pydantic Settings.
# A file-backed SQLite database is shared by both store handles and by the
# threadpool workers that run sync routes.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="ventfreely-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'test.db')}"
os.environ.pop("SERVICE_DATABASE_URL", None)
os.environ["AUTH_JWT_SECRET"] = "test-secret"
os.environ["SHOPIFY_WEBHOOK_SECRET"] = "shopify-test-secret"
os.environ["RATELIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("SENTRY_DSN", None)

# Add the project root to the python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), ".")))
