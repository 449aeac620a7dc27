"""Settings loader for Switchboard."""

from pathlib import Path
from typing import Any

import tomllib
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _toml_settings_source() -> dict[str, Any]:
    """Load settings from config.toml with keys mapped to Settings fields.

    This source has LOWER priority than env/.env so those can override TOML.
    """
    cfg_path = Path("config.toml")
    if not cfg_path.exists():
        return {}
    with cfg_path.open("rb") as f:
        t = tomllib.load(f)
    discord_cfg = t.get("discord", {}) or {}
    server_cfg = t.get("server", {}) or {}
    out: dict[str, Any] = {
        "env": t.get("app", {}).get("env", "dev"),
        "debug": t.get("app", {}).get("debug", False),
        "discord_api_base_url": discord_cfg.get("api_base_url", "https://discord.com/api/v10"),
        "rest_timeout_seconds": discord_cfg.get("rest_timeout_seconds", 20),
        "interactions_endpoint": server_cfg.get("endpoint", "/interactions"),
        "app_host": server_cfg.get("host", "127.0.0.1"),
        "app_port": server_cfg.get("port", 18000),
        # Logging config
        "logging_enabled": t.get("logging", {}).get("enabled", True),
        "logging_level": t.get("logging", {}).get("level", "INFO"),
        # Per-handler levels: strings INFO|DEBUG|WARNING|ERROR|CRITICAL|NONE
        "logging_console": None,
        "logging_file": None,
        "logging_file_path": t.get("logging", {}).get("file_path", "logs/switchboard.jsonl"),
        "logging_max_bytes": t.get("logging", {}).get("max_bytes", 5_000_000),
        "logging_backup_count": t.get("logging", {}).get("backup_count", 5),
    }
    # Public identifiers may live in TOML; the bot token never should.
    if discord_cfg.get("app_id"):
        out["discord_app_id"] = str(discord_cfg["app_id"])
    if discord_cfg.get("public_key"):
        out["discord_public_key"] = discord_cfg["public_key"]

    log_cfg = t.get("logging", {}) or {}
    # Derive per-handler levels if provided as strings; otherwise fallback from booleans
    console_val = log_cfg.get("console", None)
    file_val = log_cfg.get("to_file", None)
    overall = out["logging_level"]

    def _norm_level(v, default):
        if isinstance(v, str):
            return v.upper()
        if isinstance(v, bool):
            return default if v else "NONE"
        return default

    out["logging_console"] = _norm_level(console_val, overall)
    # File logging is off unless [logging].to_file is set
    out["logging_file"] = "NONE" if file_val is None else _norm_level(file_val, overall)
    return out


class Settings(BaseSettings):
    env: str = Field(default="dev")
    debug: bool = False

    # --- Discord Credentials ---
    discord_app_id: str | None = None
    discord_public_key: str = ""
    discord_bot_token: SecretStr | None = None
    discord_api_base_url: str = "https://discord.com/api/v10"
    rest_timeout_seconds: float = 20

    # --- Server ---
    interactions_endpoint: str = "/interactions"
    app_host: str = "127.0.0.1"
    app_port: int = 18000

    # --- Logging ---
    logging_enabled: bool = True
    logging_level: str = "INFO"
    logging_console: str = "INFO"
    logging_file: str = "NONE"
    logging_file_path: str = "logs/switchboard.jsonl"
    logging_max_bytes: int = 5_000_000
    logging_backup_count: int = 5

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Precedence (highest to lowest):
        # 1) init_settings (explicit overrides in code/tests)
        # 2) dotenv (.env in cwd)
        # 3) env_settings (OS env)
        # 4) TOML (config.toml), project defaults
        # 5) file_secret_settings
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            _toml_settings_source,
            file_secret_settings,
        )


def load_settings(**overrides: Any) -> Settings:
    return Settings(**overrides)
