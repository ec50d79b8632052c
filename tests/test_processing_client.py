"""
Unit tests for the processing service client.
"""
from unittest.mock import MagicMock, patch

import pytest
import requests

from client.processing_client import ProcessingServiceClient
from core.exceptions import TransportError
from core.schema import ClassificationSelection, ReportRequest

BASE_URL = "http://service.test/api"


def _response(status_code=200, payload=None, content=b"", headers=None, json_error=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.content = content
    response.headers = headers or {}
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


@pytest.fixture
def client():
    return ProcessingServiceClient(base_url=BASE_URL + "/", timeout=5)


def test_upload_file_sends_multipart(client):
    """Test the upload carries the file and both selector values."""
    selection = ClassificationSelection.from_values("BDO", "EPR")
    
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(payload={"processing_id": "p-1"})
        result = client.upload_file("batch.txt", b"A|1.00\n", selection)
    
    assert result.processing_id == "p-1"
    mock_request.assert_called_once_with(
        "post",
        f"{BASE_URL}/upload-file",
        timeout=5,
        files={"file": ("batch.txt", b"A|1.00\n")},
        data={"payment_mode": "BDO", "area": "EPR"},
    )


def test_upload_file_non_success_status(client):
    """Test a non-success status becomes a transport error."""
    selection = ClassificationSelection.from_values("BDO", "EPR")
    
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(status_code=500)
        with pytest.raises(TransportError) as exc_info:
            client.upload_file("batch.txt", b"", selection)
    
    assert exc_info.value.message == "Failed to upload file"
    assert exc_info.value.details["status_code"] == 500


def test_get_processing_status(client):
    """Test the status payload is parsed."""
    payload = {
        "status": "completed",
        "processed_data": {"rows": 2},
        "summary": {"total_amount": 10.0, "total_transactions": 2},
        "raw_contents": ["A", "B"],
        "separator": "|",
    }
    
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(payload=payload)
        status = client.get_processing_status("p-1")
    
    assert status.status == "completed"
    assert status.raw_contents == ["A", "B"]
    mock_request.assert_called_once_with("get", f"{BASE_URL}/processing-status/p-1", timeout=5)


def test_get_processing_status_connection_error(client):
    """Test connection failures become transport errors."""
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(TransportError, match="Failed to connect"):
            client.get_processing_status("p-1")


def test_get_processing_status_timeout(client):
    """Test timeouts become transport errors."""
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.side_effect = requests.exceptions.Timeout("slow")
        with pytest.raises(TransportError, match="timed out"):
            client.get_processing_status("p-1")


def test_get_processing_status_invalid_json(client):
    """Test a non-JSON body becomes a transport error."""
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(json_error=ValueError("Expecting value"))
        with pytest.raises(TransportError, match="invalid JSON"):
            client.get_processing_status("p-1")


def test_get_processing_status_unexpected_structure(client):
    """Test a payload without status becomes a transport error."""
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(payload={"state": "done"})
        with pytest.raises(TransportError, match="unexpected response"):
            client.get_processing_status("p-1")


def test_generate_report(client):
    """Test the report request body and artifact."""
    report_request = ReportRequest(
        processed_data={"summary": {"total_amount": 10.0}},
        raw_contents=["A", "B"],
        separator="|",
        original_filename="batch",
        area="EPR",
    )
    headers = {"content-disposition": 'attachment; filename="batch_EPR.zip"'}
    
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(content=b"PK\x03\x04", headers=headers)
        artifact = client.generate_report(report_request)
    
    assert artifact.content == b"PK\x03\x04"
    assert artifact.content_disposition == 'attachment; filename="batch_EPR.zip"'
    mock_request.assert_called_once_with(
        "post",
        f"{BASE_URL}/generate-report",
        timeout=5,
        json={
            "processed_data": {"summary": {"total_amount": 10.0}},
            "raw_contents": ["A", "B"],
            "separator": "|",
            "original_filename": "batch",
            "area": "EPR",
        },
    )


def test_generate_report_failure(client):
    """Test a failed report request becomes a transport error."""
    report_request = ReportRequest(
        processed_data={}, raw_contents=[], separator="", original_filename="x", area="PIC"
    )
    with patch("client.processing_client.requests.request") as mock_request:
        mock_request.return_value = _response(status_code=502)
        with pytest.raises(TransportError, match="Failed to generate report"):
            client.generate_report(report_request)
