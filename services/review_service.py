"""
Review service.
Ties the upload workflow, the line search and the report exporter together
behind the operator's screen and turns every error into one message.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.config import Settings, get_settings
from core.exceptions import SplitterException, ValidationError
from core.logger import setup_logger
from core.normalize import aggregate_amounts, clean_line, format_amount
from core.schema import Area, ClassificationSelection, PaymentMode
from services.incremental_filter import IncrementalFilter
from services.report_exporter import Downloader, ReportExporter
from services.upload_workflow import SourceFile, UploadWorkflow, WorkflowStatus

logger = setup_logger(__name__)


class ReviewService:
    """State behind the review screen."""
    
    def __init__(
        self,
        client,
        settings: Optional[Settings] = None,
        downloader: Optional[Downloader] = None
    ):
        """
        Initialize review service.
        
        Args:
            client: Processing service client
            settings: Application settings
            downloader: Artifact delivery (defaults to the downloads directory)
        """
        self.settings = settings or get_settings()
        self.workflow = UploadWorkflow(client, self.settings)
        self.search = IncrementalFilter(delay=self.settings.search_debounce_seconds)
        self.exporter = ReportExporter(
            client, downloader or Downloader(self.settings.download_path)
        )
        self.payment_mode: str = ""
        self.area: str = ""
        self.error: Optional[str] = None
        self._computed_total = None
        self.upload_pending = False
    
    def select_payment_mode(self, payment_mode: Optional[str]) -> None:
        self.payment_mode = payment_mode or ""
    
    def select_area(self, area: Optional[str]) -> None:
        self.area = area or ""
    
    def mark_upload_pending(self) -> None:
        """Flag an accepted upload whose background run has not started yet."""
        self.upload_pending = True
    
    async def upload(self, filename: str, content: bytes) -> WorkflowStatus:
        """
        Upload a file and follow it to a terminal status.
        
        A refused upload only sets the error message; the previous session
        and its results stay on screen.
        
        Args:
            filename: Original file name
            content: File bytes
        
        Returns:
            Workflow status after the call
        """
        # No suspension point between here and the new session taking over
        self.upload_pending = False
        try:
            ClassificationSelection.from_values(self.payment_mode, self.area)
        except ValidationError as e:
            logger.warning(f"Upload refused: {e.message}")
            self.error = e.message
            return self.workflow.status
        
        self.error = None
        source_file = SourceFile(name=filename, content=content)
        session = await self.workflow.start(source_file, self.payment_mode, self.area)
        
        if not self.workflow.is_current(session):
            return self.workflow.status
        
        if session.status == WorkflowStatus.COMPLETED:
            self.error = None
            self.search.clear()
            self.search.set_raw_lines(session.result.raw_lines)
            self._computed_total = aggregate_amounts(session.result.raw_lines)
        elif session.status == WorkflowStatus.ERROR:
            self.error = session.error
        return self.workflow.status
    
    async def generate_report(self) -> Optional[Path]:
        """
        Export the completed session as a report.
        
        Returns:
            Path of the delivered artifact, None when the export failed
        """
        self.error = None
        try:
            return await self.exporter.export(self.workflow)
        except SplitterException as e:
            self.error = e.message
            return None
    
    def update_search(self, query: str) -> None:
        self.search.update_query(query)
    
    def clear_search(self) -> None:
        self.search.clear()
    
    def close(self) -> None:
        self.search.close()
    
    def snapshot(self) -> Dict[str, Any]:
        """
        Build the view model for the review screen.
        
        Returns:
            Dictionary with workflow, summary, search and table state
        """
        status = self.workflow.status
        result = self.workflow.result
        session = self.workflow.session
        
        rows: List[Dict[str, str]] = []
        total_amount = None
        total_transactions = 0
        computed_total = None
        if result is not None:
            rows = [
                {"original": line, "cleaned": clean_line(line)}
                for line in self.search.filtered_lines
            ]
            total_amount = format_amount(result.summary.total_amount)
            total_transactions = result.summary.total_transactions
            computed_total = format_amount(self._computed_total)
        
        return {
            "status": status.value,
            "is_processing": self.upload_pending or status in (
                WorkflowStatus.UPLOADING, WorkflowStatus.PROCESSING
            ),
            "error": self.error,
            "payment_mode": self.payment_mode,
            "area": self.area,
            "payment_modes": [m.value for m in PaymentMode],
            "areas": [a.value for a in Area],
            "filename": session.source_file.name if session else None,
            "processing_id": session.processing_id if session else None,
            "has_results": result is not None and len(result.raw_lines) > 0,
            "total_rows": len(rows),
            "total_amount": total_amount,
            "computed_total": computed_total,
            "total_transactions": total_transactions,
            "search_query": self.search.query_raw,
            "is_searching": self.search.is_searching,
            "search_status": self.search.status_text,
            "rows": rows,
            "generating_report": self.exporter.is_generating,
            "report_progress": self.exporter.progress,
        }
