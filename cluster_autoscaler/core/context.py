# cluster_autoscaler/core/context.py

import contextvars

reconcile_id_ctx = contextvars.ContextVar("reconcile_id", default=None)
cluster_ctx = contextvars.ContextVar("cluster", default=None)
role_ctx = contextvars.ContextVar("role", default=None)
