"""
Application constants and configuration defaults.

Environment Variables Reference
===============================

- ENVIRONMENT: dev, stg or prd (selects the per-environment overrides below)
- GCP_SERVICE_ACCOUNT: JSON service account credentials (optional; Application
  Default Credentials are used when unset)
- LOG_LEVEL / LOG_FORMAT: override logging defaults
- POLL_DELAY_SECONDS: fixed delay between Batch job creation and inspection
"""

from __future__ import annotations

import os
from typing import Any, Literal

ENVIRONMENT: Literal["dev", "stg", "prd"] = os.getenv("ENVIRONMENT", "dev")

# OAuth scope shared by the Run, Batch and Storage clients
OAUTH_SCOPE_CLOUD_PLATFORM = "https://www.googleapis.com/auth/cloud-platform"

# Defaults
CONSTANTS: dict[str, Any] = {
    "APP_NAME": "cloudjobs",
    "APP_VERSION": "0.3.0",
    "LOG_LEVEL": "INFO",
    "LOG_FORMAT": "json",
    "POLL_DELAY_SECONDS": 30,
    "OPERATION_POLL_INTERVAL_SECONDS": 5.0,
    "IDLE_POLL_INTERVAL_SECONDS": 10.0,
    "IDLE_MAX_POLLS": 30,
    "BATCH_MACHINE_TYPE": "e2-standard-4",
    "BATCH_TASK_COUNT": 4,
    "BATCH_PARALLELISM": 2,
    "BATCH_SCRIPT": "echo Hello world! This is task ${BATCH_TASK_INDEX}. This job has a total of ${BATCH_TASK_COUNT} tasks.",
    "BATCH_MAX_RUN_DURATION_SECONDS": 3600,
    "STORAGE_BUCKET_PREFIX": "cloudjobs-demo",
    "STORAGE_LOCATION": "US",
}

# Environment-specific overrides
_ENVIRONMENT_OVERRIDES: dict[str, dict[str, Any]] = {
    "dev": {
        "LOG_LEVEL": "DEBUG",
        "LOG_FORMAT": "console",
    },
    "stg": {},
    "prd": {
        "LOG_LEVEL": "INFO",
    },
}

CONSTANTS.update(_ENVIRONMENT_OVERRIDES.get(ENVIRONMENT, {}))
