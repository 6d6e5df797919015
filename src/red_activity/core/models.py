import tempfile
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityKind(Enum):
    """Kinds of OS-observable activity"""

    PROCESS = "process"
    FILE = "file"
    NETWORK = "network"


class FileAction(Enum):
    """Steps of the file lifecycle"""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"


class Outcome(Enum):
    SUCCESS = "success"
    ERROR = "error"


class RunState(Enum):
    """States of one orchestrated activity run"""

    INIT = "init"
    RUNNING_PROCESS = "running_process"
    MANAGING_FILE = "managing_file"
    TRANSMITTING = "transmitting"
    DONE = "done"
    FAILED = "failed"


class CorrelationContext(BaseModel):
    """Identity fields attached to every activity event of a run"""

    model_config = ConfigDict(frozen=True)

    actor_name: str
    process_name: str
    command_line: str
    process_id: int

    def log_fields(self) -> dict[str, Any]:
        """Fields to bind onto a logger; a new dict on every call"""
        return {
            "username": self.actor_name,
            "process_name": self.process_name,
            "process_command_line": self.command_line,
            "process_id": self.process_id,
        }


class ActivitySettings(BaseModel):
    """Validated inputs for one orchestrated run"""

    directory: str = Field(default_factory=tempfile.gettempdir)
    extension: str = ""
    process_path: str = "true"
    process_args: list[str] = Field(default_factory=list)
    file_payload: str = "file append"
    network_payload: str = "hello"
    timeout_seconds: float = Field(default=10.0, gt=0)

    @field_validator("extension")
    @classmethod
    def _dotted_extension(cls, value: str) -> str:
        value = value.strip()
        if value and not value.startswith("."):
            return f".{value}"
        return value

    @field_validator("process_path")
    @classmethod
    def _non_empty_path(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("process_path must not be empty")
        return value


class TransmitResult(BaseModel):
    """Endpoints and byte counts of one TCP transmission"""

    protocol: str = "tcp"
    source_address: str
    destination_address: str
    bytes_sent: int = 0
    bytes_received: Optional[int] = None


class RunReport(BaseModel):
    """Outcome of one orchestrated run"""

    success: bool
    state: RunState
    failed_stage: Optional[RunState] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    file_path: Optional[str] = None
    process_exit_code: Optional[int] = None
    transmit: Optional[TransmitResult] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    elapsed_seconds: float = 0.0

    def summary(self) -> str:
        if self.success:
            return "activity run completed"
        stage = self.failed_stage.value if self.failed_stage else "unknown"
        return f"activity run failed during {stage}: {self.error}"
