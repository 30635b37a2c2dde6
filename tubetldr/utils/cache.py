import hashlib
import json
import os
from typing import Optional
from tubetldr.config import settings
from tubetldr.utils.logger import logger

class CacheManager:
    """On-disk cache of finished summaries.

    Only summaries are stored. API keys, caption tracks and their signed URLs
    expire quickly and are fetched fresh on every run.
    """

    def __init__(self, cache_dir: Optional[str] = None):
        self.cache_dir = cache_dir or settings.CACHE_DIR

    def _get_hash(self, key_data: str) -> str:
        return hashlib.sha256(key_data.encode()).hexdigest()

    def _summary_path(self, key_data: str) -> str:
        return os.path.join(self.cache_dir, "summaries", f"{self._get_hash(key_data)}.json")

    def get_summary(self, key_data: str) -> Optional[str]:
        path = self._summary_path(key_data)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load summary cache {path}: {e}")
            return None
        logger.info("Hit summary cache!")
        return data.get("summary")

    def save_summary(self, key_data: str, summary: str):
        path = self._summary_path(key_data)
        try:
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump({"key": key_data, "summary": summary}, f, ensure_ascii=False, indent=2)
        except OSError as e:
            logger.warning(f"Failed to write summary cache {path}: {e}")

cache_manager = CacheManager()
