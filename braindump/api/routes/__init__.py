# API Routes Module
from braindump.api.routes import (
    admin,
    auth,
    categorize,
    dumps,
    profiles,
    quota,
    subscriptions,
    voice,
)

__all__ = [
    "admin",
    "auth",
    "categorize",
    "dumps",
    "profiles",
    "quota",
    "subscriptions",
    "voice",
]
