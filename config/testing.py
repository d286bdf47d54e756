from .config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

AUTO_INIT_DB = False
AUTO_SEED_DB = False
APP_BASE_URL = "http://localhost:5000"
SMTP_HOST = ""
