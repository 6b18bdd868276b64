import os
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("API_TESTER_DB_URL", "sqlite:///./test_api_tester.db")
os.environ.setdefault("API_TESTER_SYNC_SOURCE_DB_PATH", "./test_missing_theme_modifier.db")

os.environ.setdefault("SHOPIFY_APP_API_KEY", "test_key")
os.environ.setdefault("SHOPIFY_APP_API_SECRET", "test_secret")
os.environ.setdefault("SHOPIFY_APP_SCOPES", "read_themes,write_themes")
os.environ.setdefault("SHOPIFY_APP_BASE_URL", "https://example.ngrok.app")
os.environ.setdefault("THEME_MODIFIER_DB_URL", "sqlite:///./test_theme_modifier.db")
os.environ.setdefault("API_TESTER_REGISTRATION_ENABLED", "false")
os.environ.setdefault("APP_PROXY_VERIFY_SIGNATURE", "true")
