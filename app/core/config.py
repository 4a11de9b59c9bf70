import os

# ✅ Environment
APP_ENV = os.getenv("APP_ENV", "development")
IS_PRODUCTION = APP_ENV == "production"

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./screening.db")
RUN_MIGRATIONS = os.getenv("RUN_MIGRATIONS", "0") == "1"

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

# ✅ CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]

# ✅ OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TIMEOUT_SECONDS = float(os.getenv("OPENAI_TIMEOUT_SECONDS", "30"))

# ✅ Screening
SCREENING_MAX_BATCH_SIZE = int(os.getenv("SCREENING_MAX_BATCH_SIZE", "500"))
SCREENING_MAX_FILE_SIZE = int(os.getenv("SCREENING_MAX_FILE_SIZE", str(50 * 1024 * 1024)))
SCREENING_MAX_WORKERS = int(os.getenv("SCREENING_MAX_WORKERS", "5"))
SCREENING_MAX_ATTEMPTS = int(os.getenv("SCREENING_MAX_ATTEMPTS", "3"))
SCREENING_RETRY_BASE_DELAY = float(os.getenv("SCREENING_RETRY_BASE_DELAY", "2.0"))

# ✅ Match buckets
STRONG_MATCH_THRESHOLD = int(os.getenv("STRONG_MATCH_THRESHOLD", "80"))
MODERATE_MATCH_THRESHOLD = int(os.getenv("MODERATE_MATCH_THRESHOLD", "50"))
