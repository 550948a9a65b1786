import os
from dotenv import load_dotenv

load_dotenv()

ENV = os.getenv("ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./taskboard.db")

# Account excluded from every statistic
SYSTEM_ACCOUNT_NAME = os.getenv("SYSTEM_ACCOUNT_NAME", "System_Admin")

CALENDAR_EVENT_PREFIX = os.getenv("CALENDAR_EVENT_PREFIX", "[TASK]")

# Seeded on startup when set, so a fresh database has someone to approve registrations
ADMIN_EMPLOYEE_ID = os.getenv("ADMIN_EMPLOYEE_ID")
ADMIN_NAME = os.getenv("ADMIN_NAME", "Administrator")
