import os
import time
from typing import Any, Callable, Optional
from uuid import uuid4

import structlog

from .deadline import Deadline
from .errors import ActivityError
from .generator import ActivityGenerator
from .models import ActivitySettings, CorrelationContext, RunReport, RunState

logger = structlog.get_logger(__name__)


class ActivityOrchestrator:
    """
    Runs the process, file and network stages in order.

    The first failing stage moves the run to FAILED and no further stage is
    attempted. There are no retries.
    """

    def __init__(
        self,
        settings: Optional[ActivitySettings] = None,
        logger: Optional[Any] = None,
        context_factory: Optional[Callable[[], CorrelationContext]] = None,
    ):
        self.settings = settings or ActivitySettings()
        self.logger = logger
        self.context_factory = context_factory

        self.state = RunState.INIT
        self.transitions: list[RunState] = [RunState.INIT]
        self.last_error: Optional[BaseException] = None
        self.generator: Optional[ActivityGenerator] = None

    def _transition(self, state: RunState) -> None:
        logger.debug("Activity run transition", from_state=self.state.value, to_state=state.value)
        self.state = state
        self.transitions.append(state)

    def next_file_path(self) -> str:
        name = f"{uuid4().hex}{self.settings.extension}"
        return os.path.join(self.settings.directory, name)

    async def run(self) -> RunReport:
        """Run all stages once and report the outcome"""
        if self.state is not RunState.INIT:
            raise RuntimeError(f"orchestrator already ran (state {self.state.value})")

        start_time = time.time()
        deadline = Deadline.after(self.settings.timeout_seconds)
        report = RunReport(success=False, state=self.state)

        logger.info(
            "Activity run started",
            directory=self.settings.directory,
            executable=self.settings.process_path,
            timeout_seconds=self.settings.timeout_seconds,
        )

        try:
            context = self.context_factory() if self.context_factory else None
            self.generator = ActivityGenerator(logger=self.logger, context=context)

            self._transition(RunState.RUNNING_PROCESS)
            report.process_exit_code = await self.generator.run_process(
                self.settings.process_path,
                self.settings.process_args,
                deadline=deadline,
            )

            self._transition(RunState.MANAGING_FILE)
            report.file_path = self.next_file_path()
            await self.generator.manage_file(
                report.file_path,
                self.settings.file_payload.encode(),
                deadline=deadline,
            )

            self._transition(RunState.TRANSMITTING)
            report.transmit = await self.generator.localhost_transmit(
                self.settings.network_payload.encode(), deadline=deadline
            )

            self._transition(RunState.DONE)
            report.success = True

        except ActivityError as e:
            self.last_error = e
            report.failed_stage = self.state
            report.error = str(e)
            report.error_type = type(e).__name__
            self._transition(RunState.FAILED)
            logger.error(
                "Activity run failed",
                stage=report.failed_stage.value,
                error=report.error,
                error_type=report.error_type,
            )

        report.state = self.state
        report.elapsed_seconds = time.time() - start_time
        if report.success:
            logger.info(
                "Activity run completed",
                file_path=report.file_path,
                elapsed_seconds=round(report.elapsed_seconds, 3),
            )
        return report
