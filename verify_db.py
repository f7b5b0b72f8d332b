import asyncio
import sys

from clinic_api.core.config import settings
from clinic_api.core.errors import AppError
from clinic_api.core.logger import setup_logging, logger
from clinic_api.services.db_service import ConnectionManager, mask_url, sanitize_url

setup_logging()

async def verify_connection(manager: ConnectionManager) -> bool:
    url = sanitize_url(settings.SUPABASE_URL)
    if not url:
        logger.error("SUPABASE_URL is not set in env")
    else:
        logger.info(f"Testing DB connection to {mask_url(url)} ...")

    try:
        await manager.ensure_connected()
    except AppError as e:
        logger.error(f"Connection failed: {type(e).__name__}: {e.message}")
        return False

    logger.info("✅ Success: connected to DB")
    return True

if __name__ == "__main__":
    ok = asyncio.run(verify_connection(ConnectionManager(settings)))
    sys.exit(0 if ok else 1)
