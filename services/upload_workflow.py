"""
Upload workflow state machine.
Drives upload -> remote processing -> polling -> completed/error for the
single live session, discarding responses that belong to a superseded one.
"""
import asyncio
import functools
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from core.config import Settings, get_settings
from core.exceptions import (
    ProcessingTimeoutError,
    ServiceReportedError,
    SplitterException,
)
from core.logger import setup_logger
from core.schema import ClassificationSelection, ProcessedResult

logger = setup_logger(__name__)

DEFAULT_PROCESSING_ERROR = "Error processing file"


class WorkflowStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class SourceFile:
    """File picked by the operator."""
    name: str
    content: bytes
    
    @property
    def stem(self) -> str:
        """File name without its last extension."""
        if "." not in self.name:
            return self.name
        return self.name.rsplit(".", 1)[0]


@dataclass
class UploadSession:
    """One upload attempt, from file selection to a terminal status."""
    generation: int
    source_file: SourceFile
    selection: ClassificationSelection
    status: WorkflowStatus = WorkflowStatus.UPLOADING
    processing_id: Optional[str] = None
    result: Optional[ProcessedResult] = None
    failure: Optional[SplitterException] = None
    
    @property
    def error(self) -> Optional[str]:
        return self.failure.message if self.failure else None
    
    @property
    def is_live(self) -> bool:
        return self.status in (WorkflowStatus.UPLOADING, WorkflowStatus.PROCESSING)


class UploadWorkflow:
    """Owns the current upload session and its poll loop."""
    
    def __init__(self, client, settings: Optional[Settings] = None):
        """
        Initialize workflow.
        
        Args:
            client: Processing service client
            settings: Settings providing poll interval and bound
        """
        settings = settings or get_settings()
        self._client = client
        self._poll_interval = settings.poll_interval_seconds
        self._max_poll_attempts = settings.max_poll_attempts
        self._generation = 0
        self._session: Optional[UploadSession] = None
    
    @property
    def session(self) -> Optional[UploadSession]:
        return self._session
    
    @property
    def status(self) -> WorkflowStatus:
        if self._session is None:
            return WorkflowStatus.IDLE
        return self._session.status
    
    @property
    def result(self) -> Optional[ProcessedResult]:
        """Processed result, visible only once the session completed."""
        if self._session is None or self._session.status != WorkflowStatus.COMPLETED:
            return None
        return self._session.result
    
    @property
    def error(self) -> Optional[str]:
        if self._session is None:
            return None
        return self._session.error
    
    def is_current(self, session: UploadSession) -> bool:
        """Check whether a session is still the live one."""
        return self._session is not None and self._session.generation == session.generation
    
    async def start(
        self,
        source_file: SourceFile,
        payment_mode: Optional[str],
        area: Optional[str]
    ) -> UploadSession:
        """
        Start a new upload, superseding any previous session.
        
        Args:
            source_file: Selected file
            payment_mode: Selected payment mode
            area: Selected area
        
        Returns:
            The session in its terminal state (or as left when superseded)
        
        Raises:
            ValidationError: If the selection is incomplete; the current
                session is left untouched
        """
        selection = ClassificationSelection.from_values(payment_mode, area)
        
        self._generation += 1
        session = UploadSession(
            generation=self._generation,
            source_file=source_file,
            selection=selection,
        )
        if self._session is not None and self._session.is_live:
            logger.info(
                f"Session {self._session.generation} superseded by session {session.generation}"
            )
        self._session = session
        
        logger.info(
            f"Session {session.generation}: uploading {source_file.name} "
            f"(payment_mode={selection.payment_mode.value}, area={selection.area.value})"
        )
        
        try:
            upload = await self._call(
                self._client.upload_file, source_file.name, source_file.content, selection
            )
        except SplitterException as e:
            self._fail(session, e)
            return session
        
        if not self.is_current(session):
            logger.info(f"Session {session.generation}: discarding stale upload response")
            return session
        
        session.processing_id = upload.processing_id
        session.status = WorkflowStatus.PROCESSING
        logger.info(f"Session {session.generation}: processing id {session.processing_id}")
        
        await self._poll(session)
        return session
    
    async def _poll(self, session: UploadSession) -> None:
        """Poll processing status sequentially until a terminal status."""
        attempts = 0
        while True:
            if self._max_poll_attempts and attempts >= self._max_poll_attempts:
                self._fail(session, ProcessingTimeoutError(
                    f"Processing did not finish after {attempts} status checks",
                    details={"processing_id": session.processing_id, "attempts": attempts}
                ))
                return
            attempts += 1
            
            try:
                status = await self._call(
                    self._client.get_processing_status, session.processing_id
                )
            except SplitterException as e:
                self._fail(session, e)
                return
            
            if not self.is_current(session):
                logger.info(
                    f"Session {session.generation}: discarding stale status for "
                    f"{session.processing_id}"
                )
                return
            
            if status.status == "completed":
                self._complete(session, status)
                return
            
            if status.status == "error":
                self._fail(session, ServiceReportedError(
                    status.error or DEFAULT_PROCESSING_ERROR,
                    details={"processing_id": session.processing_id}
                ))
                return
            
            logger.debug(
                f"Session {session.generation}: status '{status.status}', "
                f"next check in {self._poll_interval}s (attempt {attempts})"
            )
            await asyncio.sleep(self._poll_interval)
            
            if not self.is_current(session):
                logger.info(f"Session {session.generation}: poll loop cancelled")
                return
    
    def _complete(self, session: UploadSession, status) -> None:
        result = ProcessedResult.from_status(status)
        session.result = result
        session.status = WorkflowStatus.COMPLETED
        logger.info(
            f"Session {session.generation}: completed with {len(result.raw_lines)} lines, "
            f"total {result.summary.total_amount}"
        )
    
    def _fail(self, session: UploadSession, error: SplitterException) -> None:
        if not self.is_current(session):
            logger.info(
                f"Session {session.generation}: ignoring error from superseded session: "
                f"{error.message}"
            )
            return
        session.failure = error
        session.status = WorkflowStatus.ERROR
        logger.error(f"Session {session.generation}: {error.message}")
    
    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        # Blocking HTTP runs in the default executor; state changes stay on the loop
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))
