import os

# ✅ Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./jobgate.db")

# ✅ Security
SECRET_KEY = os.getenv("SECRET_KEY", "change-me")
ALGORITHM = os.getenv("ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

# ✅ Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "logs")

# ✅ Metering
FREE_PLAN_TYPE = os.getenv("FREE_PLAN_TYPE", "free")
FREE_PLAN_PERIOD_DAYS = int(os.getenv("FREE_PLAN_PERIOD_DAYS", "30"))
SUBSCRIPTION_PERIOD_DAYS = int(os.getenv("SUBSCRIPTION_PERIOD_DAYS", "30"))
YEARLY_PERIOD_DAYS = int(os.getenv("YEARLY_PERIOD_DAYS", "365"))
METERING_RETRY_LIMIT = int(os.getenv("METERING_RETRY_LIMIT", "3"))

# ✅ Frontend (paywall links)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
