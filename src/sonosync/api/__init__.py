"""Device capability interface and its Sonos implementation."""

from sonosync.api.capability import (
    DeviceEvent,
    DeviceHandle,
    DeviceProvider,
    GroupHandle,
    Subscription,
    SubscriptionSet,
    TopologyListener,
)
from sonosync.api.errors import (
    DiscoveryError,
    EnumerationError,
    QueryError,
    SubscriptionTeardownError,
    SyncError,
)

__all__ = [
    "DeviceEvent",
    "DeviceHandle",
    "DeviceProvider",
    "DiscoveryError",
    "EnumerationError",
    "GroupHandle",
    "QueryError",
    "Subscription",
    "SubscriptionSet",
    "SubscriptionTeardownError",
    "SyncError",
    "TopologyListener",
]
