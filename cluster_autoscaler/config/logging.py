# cluster_autoscaler/config/logging.py

import json
import logging
from datetime import datetime, timezone

from cluster_autoscaler.core.context import cluster_ctx, reconcile_id_ctx, role_ctx

# `extra=` keys copied into the JSON record when present.
_EXTRA_FIELDS = (
    "namespace",
    "action",
    "from_replicas",
    "to_replicas",
    "target_replicas",
    "zone",
    "query",
    "status_code",
    "value",
    "reason",
    "error",
)


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "reconcile_id": reconcile_id_ctx.get(),
            "cluster": cluster_ctx.get(),
            "role": role_ctx.get(),
        }
        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_record[key] = getattr(record, key)
        return json.dumps(log_record, default=str)


def configure_logging(log_level: str):
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.addHandler(handler)
