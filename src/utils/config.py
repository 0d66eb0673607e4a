# settings shared by the api client, storage and the app
import os

API_URL = os.getenv("BUYPOINT_API_URL", "http://127.0.0.1:8000")
API_TIMEOUT = float(os.getenv("BUYPOINT_API_TIMEOUT", "10"))

DB_PATH = os.getenv("BUYPOINT_DB_PATH", "data/storage.sqlite")

AUTH_STORAGE_KEY = "buyPoint-auth"
CART_STORAGE_KEY = "cart-storage"

LOGIN_ROUTE = "login"

LOG_LEVEL = os.getenv("BUYPOINT_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("BUYPOINT_LOG_FILE")
