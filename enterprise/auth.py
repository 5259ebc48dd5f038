from fastapi import Header, HTTPException, Depends
from dataclasses import dataclass

import config


@dataclass
class UserContext:
    api_key: str
    role: str
    staff_id: str


# key -> (role, staff id)
DEMO_KEYS = {
    "demo-doctor-key": ("doctor", "00000000-0000-0000-0000-00000000d0c1"),
    "demo-inventory-key": ("inventory", "00000000-0000-0000-0000-0000000001e5"),
    "demo-admin-key": ("admin", "00000000-0000-0000-0000-00000000ad31"),
}


def load_keys(raw: str = None):
    """Parse ``key:role:staff_id`` entries; falls back to the demo keys."""
    raw = config.API_KEYS if raw is None else raw
    if not raw:
        return dict(DEMO_KEYS)
    keys = {}
    for entry in raw.split(","):
        parts = entry.strip().split(":")
        if len(parts) != 3:
            continue
        key, role, staff_id = parts
        keys[key] = (role, staff_id)
    return keys


CLINIC_KEYS = load_keys()


def require_auth(x_api_key: str = Header(...)) -> UserContext:
    if x_api_key not in CLINIC_KEYS:
        raise HTTPException(status_code=401, detail="Invalid API key")

    role, staff_id = CLINIC_KEYS[x_api_key]
    return UserContext(api_key=x_api_key, role=role, staff_id=staff_id)


def require_role(*allowed: str):
    def checker(user: UserContext = Depends(require_auth)):
        if user.role != "admin" and user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"Requires role: {' or '.join(allowed)}"
            )
        return user
    return checker
