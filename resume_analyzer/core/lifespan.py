from contextlib import asynccontextmanager
import logging
from pathlib import Path

from resume_analyzer.core.config import settings
from resume_analyzer.storage.records_store import get_record_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    Path(settings.blob_storage_dir).mkdir(parents=True, exist_ok=True)
    store = get_record_store()
    store.init()
    logger.info("record_store_ready path=%s", settings.database_path)
    yield
    store.close()
