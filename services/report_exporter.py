"""
Report export: re-submits processed data and delivers the returned artifact.
"""
import asyncio
import os
import re
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from core.config import get_settings
from core.exceptions import NoDataError
from core.logger import setup_logger
from core.schema import ReportRequest
from services.upload_workflow import UploadWorkflow, WorkflowStatus

logger = setup_logger(__name__)

FILENAME_PATTERN = re.compile(r"filename[^;=\n]*=((['\"]).*?\2|[^;\n]*)")


def resolve_filename(content_disposition: Optional[str], stem: str, area: str) -> str:
    """
    Pick the download name for a report.
    
    Args:
        content_disposition: Content-Disposition header, if any
        stem: Uploaded file name without extension
        area: Selected area
    
    Returns:
        Server-provided name when present, else ``{stem}_{area}.zip``
    """
    if content_disposition:
        match = FILENAME_PATTERN.search(content_disposition)
        if match and match.group(1):
            # Never let the server choose a directory
            filename = Path(re.sub(r"['\"]", "", match.group(1)).strip()).name
            if filename and filename not in (".", ".."):
                return filename
    return f"{stem}_{area}.zip"


class Downloader:
    """Places report artifacts in the downloads directory."""
    
    def __init__(self, download_path: Optional[str] = None):
        self.download_dir = Path(download_path or get_settings().download_path)
    
    @contextmanager
    def staged(self, content: bytes) -> Iterator[Path]:
        """
        Hold the artifact in a transient file for the duration of a delivery.
        
        The transient file is always removed on exit.
        """
        self.download_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.download_dir, suffix=".part")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(content)
            yield tmp_path
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
                logger.debug(f"Released staging file {tmp_path}")
    
    def deliver(self, content: bytes, filename: str) -> Path:
        """
        Save an artifact under the given name.
        
        Args:
            content: Artifact bytes
            filename: Target file name
        
        Returns:
            Path of the delivered file
        """
        target = self.download_dir / Path(filename).name
        with self.staged(content) as staged_path:
            os.replace(staged_path, target)
        logger.info(f"Delivered {len(content)} bytes to {target}")
        return target


class ReportExporter:
    """Generates and delivers the report for a completed session."""
    
    def __init__(self, client, downloader: Optional[Downloader] = None):
        self._client = client
        self._downloader = downloader or Downloader()
        self.is_generating = False
        # Cosmetic only; the transport reports no per-chunk progress
        self.progress = 0
    
    async def export(self, workflow: UploadWorkflow) -> Path:
        """
        Request the report for the workflow's completed session.
        
        Args:
            workflow: Upload workflow holding the completed session
        
        Returns:
            Path of the delivered artifact
        
        Raises:
            NoDataError: If no completed processing result is available
            TransportError: If report generation fails
        """
        session = workflow.session
        result = workflow.result
        if session is None or session.status != WorkflowStatus.COMPLETED or result is None:
            raise NoDataError("No data available for report generation")
        
        stem = session.source_file.stem
        area = session.selection.area.value
        report_request = ReportRequest(
            processed_data=result.structured_data,
            raw_contents=list(result.raw_lines),
            separator=result.separator,
            original_filename=stem,
            area=area,
        )
        
        self.is_generating = True
        self.progress = 0
        try:
            loop = asyncio.get_running_loop()
            artifact = await loop.run_in_executor(
                None, self._client.generate_report, report_request
            )
            filename = resolve_filename(artifact.content_disposition, stem, area)
            path = self._downloader.deliver(artifact.content, filename)
            logger.info(f"Report generated for session {session.generation}: {path.name}")
            return path
        except Exception as e:
            logger.error(f"Error generating report: {e}")
            raise
        finally:
            self.is_generating = False
            self.progress = 0
