"""
Notification drivers for delivering build alerts.
"""

from apps.notify.drivers.base import BaseNotifyDriver, NotificationMessage
from apps.notify.drivers.email import EmailNotifyDriver, SentEmail

__all__ = [
    "NotificationMessage",
    "BaseNotifyDriver",
    "EmailNotifyDriver",
    "SentEmail",
    "DRIVER_REGISTRY",
    "get_driver",
]

# Registry of available notification drivers
DRIVER_REGISTRY: dict[str, type[BaseNotifyDriver]] = {
    "email": EmailNotifyDriver,
}


def get_driver(name: str) -> BaseNotifyDriver:
    """
    Get a notification driver instance by name.

    Raises:
        ValueError: If driver name is not found.
    """
    if name not in DRIVER_REGISTRY:
        raise ValueError(
            f"Unknown notify driver: {name}. Available: {', '.join(DRIVER_REGISTRY.keys())}"
        )
    return DRIVER_REGISTRY[name]()
