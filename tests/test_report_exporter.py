"""
Unit tests for report export and artifact delivery.
"""
import asyncio
from unittest.mock import MagicMock

import pytest

from core.config import Settings
from core.exceptions import NoDataError, TransportError
from core.schema import ProcessingStatus, ReportArtifact, UploadResponse
from services.report_exporter import Downloader, ReportExporter, resolve_filename
from services.upload_workflow import SourceFile, UploadWorkflow, WorkflowStatus


def _completed_workflow(client, filename="batch.txt", area="EPR"):
    client.upload_file.return_value = UploadResponse(processing_id="p-1")
    client.get_processing_status.return_value = ProcessingStatus(
        status="completed",
        processed_data={"rows": 2},
        summary={"total_amount": 10.0, "total_transactions": 2},
        raw_contents=["A", "B"],
        separator="|",
    )
    workflow = UploadWorkflow(client, Settings(_env_file=None, poll_interval_seconds=0))
    asyncio.run(workflow.start(SourceFile(filename, b"A\nB\n"), "BDO", area))
    assert workflow.status == WorkflowStatus.COMPLETED
    return workflow


@pytest.mark.parametrize("header,expected", [
    ('attachment; filename="server_report.zip"', "server_report.zip"),
    ("attachment; filename='quoted.zip'", "quoted.zip"),
    ("attachment; filename=plain.zip", "plain.zip"),
    ("attachment; filename=plain.zip; size=10", "plain.zip"),
    ('attachment; filename="../../etc/evil.zip"', "evil.zip"),
    ("attachment", "batch_EPR.zip"),
    ("attachment; filename=", "batch_EPR.zip"),
    (None, "batch_EPR.zip"),
])
def test_resolve_filename(header, expected):
    """Test server names win and the fallback is stem_area.zip."""
    assert resolve_filename(header, "batch", "EPR") == expected


def test_downloader_delivers_and_releases_staging(tmp_path):
    """Test the artifact lands under its name and no staging file remains."""
    downloader = Downloader(str(tmp_path))
    
    path = downloader.deliver(b"PK\x03\x04", "report.zip")
    
    assert path == tmp_path / "report.zip"
    assert path.read_bytes() == b"PK\x03\x04"
    assert list(tmp_path.glob("*.part")) == []


def test_downloader_releases_staging_on_failure(tmp_path):
    """Test the staging file is removed when delivery fails."""
    downloader = Downloader(str(tmp_path))
    
    with pytest.raises(RuntimeError):
        with downloader.staged(b"data") as staged_path:
            assert staged_path.exists()
            raise RuntimeError("download interrupted")
    
    assert list(tmp_path.iterdir()) == []


def test_export_without_data_issues_no_request(tmp_path):
    """Test export is refused before any processing completed."""
    client = MagicMock()
    workflow = UploadWorkflow(client, Settings(_env_file=None))
    exporter = ReportExporter(client, Downloader(str(tmp_path)))
    
    with pytest.raises(NoDataError, match="No data available"):
        asyncio.run(exporter.export(workflow))
    
    client.generate_report.assert_not_called()
    assert exporter.is_generating is False


def test_export_refused_after_processing_error(tmp_path):
    """Test a failed session cannot be exported."""
    client = MagicMock()
    client.upload_file.side_effect = TransportError("Failed to upload file")
    workflow = UploadWorkflow(client, Settings(_env_file=None))
    asyncio.run(workflow.start(SourceFile("batch.txt", b""), "BDO", "EPR"))
    exporter = ReportExporter(client, Downloader(str(tmp_path)))
    
    with pytest.raises(NoDataError):
        asyncio.run(exporter.export(workflow))
    client.generate_report.assert_not_called()


def test_export_submits_processed_data(tmp_path):
    """Test the report request carries the processed result and naming hints."""
    client = MagicMock()
    workflow = _completed_workflow(client, filename="bdo.may.txt", area="PIC")
    client.generate_report.return_value = ReportArtifact(content=b"zip-bytes")
    exporter = ReportExporter(client, Downloader(str(tmp_path)))
    
    path = asyncio.run(exporter.export(workflow))
    
    report_request = client.generate_report.call_args.args[0]
    assert report_request.processed_data == {
        "rows": 2,
        "summary": {"total_amount": 10.0, "total_transactions": 2},
    }
    assert report_request.raw_contents == ["A", "B"]
    assert report_request.separator == "|"
    assert report_request.original_filename == "bdo.may"
    assert report_request.area == "PIC"
    assert path == tmp_path / "bdo.may_PIC.zip"
    assert path.read_bytes() == b"zip-bytes"
    assert client.upload_file.call_count == 1


def test_export_uses_server_filename(tmp_path):
    """Test the Content-Disposition name is preferred."""
    client = MagicMock()
    workflow = _completed_workflow(client)
    client.generate_report.return_value = ReportArtifact(
        content=b"zip", content_disposition='attachment; filename="EPR_report.zip"'
    )
    exporter = ReportExporter(client, Downloader(str(tmp_path)))
    
    path = asyncio.run(exporter.export(workflow))
    
    assert path.name == "EPR_report.zip"


def test_export_failure_keeps_result(tmp_path):
    """Test a failed export leaves the processed result for a retry."""
    client = MagicMock()
    workflow = _completed_workflow(client)
    client.generate_report.side_effect = [
        TransportError("Failed to generate report"),
        ReportArtifact(content=b"zip"),
    ]
    exporter = ReportExporter(client, Downloader(str(tmp_path)))
    exporter.progress = 40
    
    with pytest.raises(TransportError):
        asyncio.run(exporter.export(workflow))
    
    assert exporter.progress == 0
    assert exporter.is_generating is False
    assert workflow.status == WorkflowStatus.COMPLETED
    assert workflow.result.raw_lines == ("A", "B")
    
    path = asyncio.run(exporter.export(workflow))
    assert path.name == "batch_EPR.zip"
    assert exporter.progress == 0
    assert client.upload_file.call_count == 1
