from __future__ import annotations

from .config import load_settings
from .index import create_app
from .utils.logging_config import configure_logging

settings = load_settings()
configure_logging(settings)

app = create_app(settings)
