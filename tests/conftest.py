"""Test environment: isolated storage, no rate limiting, dummy AI key.

Set before any resume_analyzer import because settings are read once.
"""

import os
import tempfile

_TMP_ROOT = tempfile.mkdtemp(prefix="resume-analyzer-tests-")

os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("DATABASE_PATH", os.path.join(_TMP_ROOT, "resume_analyzer.db"))
os.environ.setdefault("BLOB_STORAGE_DIR", os.path.join(_TMP_ROOT, "blobs"))
os.environ.setdefault("AI_API_KEY", "test-api-key-for-testing")
