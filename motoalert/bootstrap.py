from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import Flask

from motoalert.core.config.yaml_config import AppConfig, load_app_config
from motoalert.notification.dispatcher import PushDispatcher
from motoalert.notification.fcm_transport import FcmPushTransport
from motoalert.notification.persister import NotificationPersister
from motoalert.runtime.alert_pipeline import AlertPipeline
from motoalert.runtime.trigger_worker import TriggerWorkerPool
from motoalert.storage.rtdb_client import RealtimeDatabaseClient
from motoalert.webhook.trigger_server import create_app


@dataclass(frozen=True)
class AppWiring:
    """Everything the entry point needs to run the service."""
    config: AppConfig
    pipeline: AlertPipeline
    workers: TriggerWorkerPool
    app: Flask


def build_pipeline(cfg: AppConfig, db: Optional[RealtimeDatabaseClient] = None) -> AlertPipeline:
    db = db or RealtimeDatabaseClient(cfg.database)

    persister = NotificationPersister(db, link_prefix=cfg.push.link_prefix)
    dispatcher = PushDispatcher(
        preferences=db,
        tokens=db,
        profiles=db,
        transport=FcmPushTransport(cfg.fcm),
        icon=cfg.push.icon,
        link_prefix=cfg.push.link_prefix,
    )
    return AlertPipeline(persister=persister, dispatcher=dispatcher, order=cfg.ordering)


def build_app_system(config_path: Optional[str] = None) -> AppWiring:
    cfg = load_app_config(config_path)

    # --- PIPELINE ---
    pipeline = build_pipeline(cfg)

    # --- WORKERS ---
    workers = TriggerWorkerPool(pipeline, cfg.worker)

    # --- HOOK ---
    app = create_app(workers, cfg.hook.token)

    return AppWiring(config=cfg, pipeline=pipeline, workers=workers, app=app)
