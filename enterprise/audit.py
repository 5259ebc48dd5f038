import json
import time
from pathlib import Path

import config


def log_action(actor: str, role: str, action: str, metadata: dict = None):
    entry = {
        "timestamp": int(time.time()),
        "actor": actor,
        "role": role,
        "action": action,
        "metadata": metadata or {},
    }

    with open(Path(config.AUDIT_LOG_PATH), "a") as f:
        f.write(json.dumps(entry, default=str) + "\n")
