from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from motoalert.core.alert.classifier import CollectionOrder
from motoalert.notification.fcm_transport import FCM_ENDPOINT, FcmConfig
from motoalert.notification.payload import DEFAULT_ICON
from motoalert.runtime.trigger_worker import TriggerWorkerConfig
from motoalert.storage.rtdb_client import RealtimeDatabaseConfig


@dataclass(frozen=True)
class HookConfig:
    """Trigger hook HTTP server settings."""
    host: str = "0.0.0.0"
    port: int = 8000
    token: Optional[str] = None


@dataclass(frozen=True)
class PushConfig:
    """Push payload presentation."""
    icon: Optional[str] = DEFAULT_ICON
    link_prefix: str = "/dashboard"


@dataclass(frozen=True)
class AppConfig:
    """
    Root application configuration loaded from YAML.

    Secrets may be left out of the file and supplied through the environment
    (``RTDB_AUTH_TOKEN``, ``FCM_ACCESS_TOKEN``, ``TRIGGER_HOOK_TOKEN``). The
    service-account key path (``service_account``, or
    ``GOOGLE_APPLICATION_CREDENTIALS``) is shared by the database and FCM
    clients and takes precedence over the static tokens.
    """
    database: RealtimeDatabaseConfig
    fcm: FcmConfig
    hook: HookConfig
    worker: TriggerWorkerConfig
    push: PushConfig
    ordering: CollectionOrder = CollectionOrder.STORED
    log_level: str = "INFO"


def _read_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError("config.yaml must contain a YAML mapping at the root")
    return data


def _resolve_default_config_path() -> Path:
    """
    Resolve config.yaml location.

    Priority:
    1) APP_CONFIG env var if provided
    2) ./config.yaml in current working directory
    """
    env = os.getenv("APP_CONFIG")
    if env:
        return Path(env).expanduser().resolve()
    return Path("config.yaml").resolve()


def _secret(raw: Dict[str, Any], key: str, env_name: str) -> Optional[str]:
    val = os.getenv(env_name) or raw.get(key)
    return str(val) if val else None


def _require(section: Dict[str, Any], key: str, where: str) -> str:
    val = section.get(key)
    if not val:
        raise ValueError(f"missing required config value: {where}.{key}")
    return str(val)


def load_app_config(path: Optional[str] = None) -> AppConfig:
    """
    Load application configuration from YAML and convert into typed config objects.

    Parameters
    ----------
    path
        Explicit path to config.yaml. If None, uses default resolution.

    Returns
    -------
    AppConfig
        Parsed and validated configuration.

    Raises
    ------
    FileNotFoundError
        If config file does not exist.
    ValueError
        If required fields are missing or invalid.
    """
    cfg_path = Path(path).expanduser().resolve() if path else _resolve_default_config_path()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    raw = _read_yaml(cfg_path)
    service_account = _secret(raw, "service_account", "GOOGLE_APPLICATION_CREDENTIALS")

    # ---- database ----
    d = raw.get("database") or {}
    database = RealtimeDatabaseConfig(
        url=_require(d, "url", "database"),
        auth_token=_secret(d, "auth_token", "RTDB_AUTH_TOKEN"),
        credentials_file=service_account,
        timeout_s=float(d.get("timeout_s", 5.0)),
    )

    # ---- fcm ----
    f = raw.get("fcm") or {}
    fcm = FcmConfig(
        project_id=_require(f, "project_id", "fcm"),
        access_token=_secret(f, "access_token", "FCM_ACCESS_TOKEN"),
        credentials_file=service_account,
        timeout_s=float(f.get("timeout_s", 5.0)),
        endpoint=str(f.get("endpoint", FCM_ENDPOINT)),
    )

    # ---- hook ----
    h = raw.get("hook") or {}
    hook = HookConfig(
        host=str(h.get("host", "0.0.0.0")),
        port=int(h.get("port", 8000)),
        token=_secret(h, "token", "TRIGGER_HOOK_TOKEN"),
    )

    # ---- worker ----
    w = raw.get("worker") or {}
    worker = TriggerWorkerConfig(
        workers=int(w.get("workers", 4)),
        max_queue=int(w.get("max_queue", 2000)),
        poll_timeout_s=float(w.get("poll_timeout_s", 0.5)),
    )

    # ---- push ----
    p = raw.get("push") or {}
    push = PushConfig(
        icon=p.get("icon", DEFAULT_ICON),
        link_prefix=str(p.get("link_prefix", "/dashboard")),
    )

    # ---- classifier ----
    c = raw.get("classifier") or {}
    try:
        ordering = CollectionOrder(str(c.get("ordering", "stored")).lower())
    except ValueError as e:
        raise ValueError(f"classifier.ordering must be 'stored' or 'sorted': {e}") from e

    log_level = str((raw.get("logging") or {}).get("level", "INFO")).upper()

    return AppConfig(
        database=database,
        fcm=fcm,
        hook=hook,
        worker=worker,
        push=push,
        ordering=ordering,
        log_level=log_level,
    )
