"""ASGI entry point: ``uvicorn web_api:app``."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

from storefront_auth.api.app import create_app
from storefront_auth.core.config import AppConfig
from storefront_auth.core.logging import setup_logging

load_dotenv()
APP_CONFIG = AppConfig.from_env()
setup_logging(APP_CONFIG.logging.level)

APP_ROOT = Path(__file__).resolve().parent

app = create_app(APP_CONFIG, app_root=APP_ROOT)
