"""
Settings for report runs: Order Store location and reporting defaults.
"""

import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

from dotenv import load_dotenv

Number = Union[int, float]


class Config:
    """Report settings read from an explicit .env file.

    Without an env file every setting keeps its default, so a snapshot run
    never picks up Order Store credentials by accident.
    """

    def __init__(self, env_file: Optional[str] = None) -> None:
        self.env_file = env_file
        if env_file and Path(env_file).exists():
            load_dotenv(env_file)
        self._settings = self._read_settings()

    def _read_settings(self) -> Dict[str, Any]:
        return {
            "log_level": self._text("LOG_LEVEL", "INFO"),
            "mongo_url": self._text("DB_CONNECTION_URL", ""),
            "mongo_db": self._text("DB_NAME", "POS_STG"),
            "orders_collection": self._text("ORDERS_COLLECTION", "orders"),
            "items_collection": self._text("ORDER_ITEMS_COLLECTION", "order_items"),
            "default_page_size": self._number("DEFAULT_PAGE_SIZE", 20, int),
            # One minor currency unit
            "payment_tolerance": self._number("PAYMENT_TOLERANCE", 1.0, float),
        }

    def _text(self, key: str, default: str) -> str:
        if self.env_file is None:
            return default
        return os.getenv(key, default)

    def _number(self, key: str, default: Number, cast: Callable[[str], Number]) -> Number:
        """Read a numeric setting; unparseable values keep the default."""
        raw = self._text(key, "")
        if not raw:
            return default
        try:
            return cast(raw)
        except ValueError:
            return default

    def get(self, key: str, default: Any = None) -> Any:
        return self._settings.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self._settings[key]
