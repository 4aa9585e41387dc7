from .connection import Connection, MsgCallback
from .msg import Msg
from .subscription import Subscription, SubscriptionStatistics

__all__ = [
    "Connection",
    "Msg",
    "MsgCallback",
    "Subscription",
    "SubscriptionStatistics",
]
