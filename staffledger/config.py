import os
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent  # <project>
INSTANCE_DIR = BASE_DIR / "instance"

def _default_sqlite_uri():
    return f"sqlite:///{(INSTANCE_DIR / 'staffledger.db').as_posix()}"

def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL") or _default_sqlite_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # окно истории по умолчанию (дней назад от сегодня)
    SALARY_HISTORY_DAYS = _int_env("SALARY_HISTORY_DAYS", 30)
    # сколько последних операций показывать на дашборде сотрудника
    SALARY_RECENT_LIMIT = _int_env("SALARY_RECENT_LIMIT", 5)
    # сколько последних операций просматривать для «ожидающих выплат»
    SALARY_PENDING_SCAN = _int_env("SALARY_PENDING_SCAN", 50)

def ensure_instance(app):
    # Flask instance path + папка для sqlite по умолчанию
    os.makedirs(app.instance_path, exist_ok=True)
    INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
