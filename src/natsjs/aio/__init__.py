from .context import JetStream, jetstream
from .memory import MemoryConnection
from .msg import Msg
from .subscription import JetStreamSubscription

__all__ = [
    "JetStream",
    "JetStreamSubscription",
    "MemoryConnection",
    "Msg",
    "jetstream",
]
