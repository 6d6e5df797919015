from .files import FileLifecycleDriver
from .network import LoopbackTransport
from .process import ProcessDriver

__all__ = [
    "FileLifecycleDriver",
    "LoopbackTransport",
    "ProcessDriver",
]
