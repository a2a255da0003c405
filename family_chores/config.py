from __future__ import annotations

# family_chores/config.py
import os
import yaml

# Settings resolution order:
# 1) environment variables (CHORES_* / APP_ENV), highest priority
# 2) config.yaml at the project root
# 3) DEFAULTS below
_PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))

DEFAULTS = {
    "app_env": "production",
    "db_path": os.path.join(_PROJECT_ROOT, "chores.db"),
    "test_db_path": "",
    "jwt_secret": "dev-secret-change-me",
    "jwt_expires_hours": "24",
    "upload_dir": os.path.join(_PROJECT_ROOT, "uploads"),
    "backup_dir": os.path.join(_PROJECT_ROOT, "backups"),
    "max_backups": "30",
    "max_upload_bytes": str(5 * 1024 * 1024),
    "scheduler_enabled": "true",
    "recurring_cron": "0 6 * * *",
    "backup_cron": "0 2 * * *",
    "auth_rate_limit": "5",
    "upload_rate_limit": "10",
    "auth_rate_window_seconds": "900",
    "email_enabled": "false",
    "push_enabled": "false",
    "smtp_host": "localhost",
    "smtp_port": "587",
    "smtp_username": "",
    "smtp_password": "",
    "smtp_from": "noreply@example.com",
    "smtp_use_tls": "true",
    "app_name": "Family Chores",
    "cors_origins": "http://localhost:5173,http://127.0.0.1:5173",
}

_ENV_KEYS = {
    "app_env": "APP_ENV",
    "db_path": "CHORES_DB_PATH",
    "jwt_secret": "CHORES_JWT_SECRET",
    "jwt_expires_hours": "CHORES_JWT_EXPIRES_HOURS",
    "upload_dir": "CHORES_UPLOAD_DIR",
    "backup_dir": "CHORES_BACKUP_DIR",
    "max_backups": "CHORES_MAX_BACKUPS",
    "scheduler_enabled": "CHORES_SCHEDULER_ENABLED",
    "recurring_cron": "CHORES_RECURRING_CRON",
    "backup_cron": "CHORES_BACKUP_CRON",
    "auth_rate_limit": "CHORES_AUTH_RATE_LIMIT",
    "upload_rate_limit": "CHORES_UPLOAD_RATE_LIMIT",
    "email_enabled": "CHORES_EMAIL_ENABLED",
    "push_enabled": "CHORES_PUSH_ENABLED",
    "smtp_host": "CHORES_SMTP_HOST",
    "smtp_port": "CHORES_SMTP_PORT",
    "smtp_username": "CHORES_SMTP_USERNAME",
    "smtp_password": "CHORES_SMTP_PASSWORD",
    "smtp_from": "CHORES_SMTP_FROM",
    "cors_origins": "CHORES_CORS_ORIGINS",
}


def _read_config_yaml() -> dict:
    cfg_path = os.environ.get("CHORES_CONFIG") or os.path.join(_PROJECT_ROOT, "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        return {}
    return {k: str(v) for k, v in cfg.items() if k in DEFAULTS and v is not None}


def _as_bool(v: str) -> bool:
    return str(v).strip().lower() in {"1", "true", "yes", "on"}


def is_test_env() -> bool:
    return (os.environ.get("APP_ENV") == "test") or (os.environ.get("PYTEST_CURRENT_TEST") is not None)


def get_settings() -> dict:
    """Merge defaults, config.yaml and environment into typed settings.

    Read on every call so tests can repoint paths through the environment.
    """
    raw = dict(DEFAULTS)
    raw.update(_read_config_yaml())
    for key, env_name in _ENV_KEYS.items():
        v = os.environ.get(env_name)
        if v is not None and v.strip() != "":
            raw[key] = v.strip()

    return {
        "app_env": raw["app_env"],
        "db_path": raw["db_path"],
        "test_db_path": raw["test_db_path"],
        "jwt_secret": raw["jwt_secret"],
        "jwt_expires_hours": int(raw["jwt_expires_hours"]),
        "upload_dir": raw["upload_dir"],
        "backup_dir": raw["backup_dir"],
        "max_backups": int(raw["max_backups"]),
        "max_upload_bytes": int(raw["max_upload_bytes"]),
        "scheduler_enabled": _as_bool(raw["scheduler_enabled"]) and not is_test_env(),
        "recurring_cron": raw["recurring_cron"],
        "backup_cron": raw["backup_cron"],
        "auth_rate_limit": int(raw["auth_rate_limit"]),
        "upload_rate_limit": int(raw["upload_rate_limit"]),
        "auth_rate_window_seconds": int(raw["auth_rate_window_seconds"]),
        "email_enabled": _as_bool(raw["email_enabled"]),
        "push_enabled": _as_bool(raw["push_enabled"]),
        "smtp_host": raw["smtp_host"],
        "smtp_port": int(raw["smtp_port"]),
        "smtp_username": raw["smtp_username"],
        "smtp_password": raw["smtp_password"],
        "smtp_from": raw["smtp_from"],
        "smtp_use_tls": _as_bool(raw["smtp_use_tls"]),
        "app_name": raw["app_name"],
        "cors_origins": [o.strip() for o in raw["cors_origins"].split(",") if o.strip()],
    }
