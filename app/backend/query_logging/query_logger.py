"""
Search analytics log.

Each storefront search is appended to a JSON-lines file so popular and
zero-result queries can be reviewed later. Writes happen on a single
background thread so file I/O never delays the search response.
"""
import json
import time
import asyncio
import logging
import concurrent.futures
from typing import Dict, Any, Optional

from config import QUERY_LOG_FILE

logger = logging.getLogger(__name__)

_executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="search-log")


def _write_log_sync(log_data: Dict[str, Any], path: Optional[str] = None):
    """Synchronous write, runs in the background thread."""
    record = dict(log_data)
    record.setdefault("timestamp", time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime()))
    try:
        with open(path or QUERY_LOG_FILE, "a", encoding="utf-8") as f:
            f.write(json.dumps(record) + "\n")
    except (OSError, TypeError, ValueError) as e:
        logger.warning("Failed to write search log: %s", e)


async def log_query_async(log_data: Dict[str, Any], path: Optional[str] = None):
    """
    Submits the log write to the background thread.
    Call with: asyncio.create_task(log_query_async(data))
    """
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(_executor, _write_log_sync, log_data, path)


def log_query(log_data: Dict[str, Any], path: Optional[str] = None):
    _write_log_sync(log_data, path)
