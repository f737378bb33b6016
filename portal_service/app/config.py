# portal_service/app/config.py

import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "postgresql://user:password@db:5432/portal")
PORT = int(os.getenv("PORT", 3000))

SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))
SESSION_COOKIE = "portal_session"

MOODLE_URL = os.getenv("MOODLE_URL", "https://moodle.astanait.edu.kz/webservice/rest/server.php")
MOODLE_TIMEOUT = float(os.getenv("MOODLE_TIMEOUT", 30))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")
