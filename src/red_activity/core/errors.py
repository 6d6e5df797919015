class ActivityError(Exception):
    """Base class for failures raised while generating activity"""

    pass


class SetupError(ActivityError):
    """Identity of the running process could not be resolved"""

    pass


# Process stage
class ProcessError(ActivityError):
    pass


class ProcessStartError(ProcessError):
    """The external process could not be started"""

    pass


class ExecutableNotFoundError(ProcessStartError):
    pass


class ExecutablePermissionError(ProcessStartError):
    pass


class ProcessWaitError(ProcessError):
    """Waiting for the external process failed (deadline or signal)"""

    pass


# File stage
class FileActivityError(ActivityError):
    pass


class FileCreateError(FileActivityError):
    pass


class FileModifyError(FileActivityError):
    pass


class FileDeleteError(FileActivityError):
    pass


class FileMissingError(FileDeleteError):
    """The file to delete does not exist"""

    pass


class InvalidHandleError(ActivityError, ValueError):
    """A file operation was given no handle"""

    pass


# Network stage
class NetworkError(ActivityError):
    pass


class ListenError(NetworkError):
    """No loopback listener could be bound"""

    pass


class DialError(NetworkError):
    """The client connection could not be established"""

    pass


class TransmitError(NetworkError):
    """Data could not be sent or received over an established connection"""

    pass


class InvalidPayloadError(NetworkError, ValueError):
    pass
