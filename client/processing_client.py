"""
REST client for the remote processing service.
Each call is a single request; retries are left to the operator.
"""
from typing import Any, Dict, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from core.config import get_settings
from core.exceptions import TransportError
from core.logger import setup_logger
from core.schema import (
    ClassificationSelection,
    ProcessingStatus,
    ReportArtifact,
    ReportRequest,
    UploadResponse,
)

logger = setup_logger(__name__)


class ProcessingServiceClient:
    """Wrapper around the processing service HTTP endpoints."""
    
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None):
        """
        Initialize REST client.
        
        Args:
            base_url: Service API root (defaults to configured SERVICE_BASE_URL)
            timeout: Request timeout in seconds (defaults to configured SERVICE_TIMEOUT)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.service_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.service_timeout
        
        logger.info(f"Initialized processing service client: {self.base_url}")
    
    def upload_file(
        self,
        filename: str,
        content: bytes,
        selection: ClassificationSelection
    ) -> UploadResponse:
        """
        Upload a transaction file for processing.
        
        Args:
            filename: Original file name
            content: File bytes
            selection: Payment mode and area for classification
        
        Returns:
            Upload response carrying the processing id
        
        Raises:
            TransportError: If the request fails or the response is invalid
        """
        url = f"{self.base_url}/upload-file"
        logger.info(
            f"Uploading {filename} ({len(content)} bytes) "
            f"payment_mode={selection.payment_mode.value} area={selection.area.value}"
        )
        
        response = self._send(
            "post",
            url,
            failure_message="Failed to upload file",
            files={"file": (filename, content)},
            data={
                "payment_mode": selection.payment_mode.value,
                "area": selection.area.value,
            },
        )
        return self._parse(response, UploadResponse, url)
    
    def get_processing_status(self, processing_id: str) -> ProcessingStatus:
        """
        Fetch the processing status of an uploaded file.
        
        Args:
            processing_id: Identifier returned by the upload
        
        Returns:
            Current status payload
        
        Raises:
            TransportError: If the request fails or the response is invalid
        """
        url = f"{self.base_url}/processing-status/{processing_id}"
        response = self._send("get", url, failure_message="Failed to get processing status")
        status = self._parse(response, ProcessingStatus, url)
        logger.debug(f"Processing {processing_id} status: {status.status}")
        return status
    
    def generate_report(self, report_request: ReportRequest) -> ReportArtifact:
        """
        Request a report artifact for already processed data.
        
        Args:
            report_request: Processed data, raw lines and naming hints
        
        Returns:
            Artifact bytes with the Content-Disposition header, if any
        
        Raises:
            TransportError: If the request fails
        """
        url = f"{self.base_url}/generate-report"
        logger.info(
            f"Requesting report for {report_request.original_filename} "
            f"({len(report_request.raw_contents)} lines, area={report_request.area})"
        )
        response = self._send(
            "post",
            url,
            failure_message="Failed to generate report",
            json=report_request.model_dump(mode="json"),
        )
        return ReportArtifact(
            content=response.content,
            content_disposition=response.headers.get("content-disposition"),
        )
    
    def _send(self, method: str, url: str, failure_message: str, **kwargs: Any) -> requests.Response:
        """Issue one request and translate transport failures."""
        try:
            response = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timeout after {self.timeout}s: {url}")
            raise TransportError(
                f"Request timed out after {self.timeout}s",
                details={"url": url, "timeout": self.timeout, "error": str(e)}
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {url}: {e}")
            raise TransportError(
                f"Failed to connect to processing service: {e}",
                details={"url": url, "error": str(e)}
            )
        
        if not response.ok:
            logger.error(f"{failure_message}: HTTP {response.status_code} from {url}")
            raise TransportError(
                failure_message,
                details={"url": url, "status_code": response.status_code}
            )
        return response
    
    def _parse(self, response: requests.Response, model, url: str):
        """Decode a JSON body into the expected schema."""
        try:
            payload: Dict[str, Any] = response.json()
            return model.model_validate(payload)
        except PydanticValidationError as e:
            logger.error(f"Unexpected response structure from {url}: {e}")
            raise TransportError(
                "Processing service returned an unexpected response",
                details={"url": url, "error": str(e)}
            )
        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {e}")
            raise TransportError(
                "Processing service returned invalid JSON",
                details={"url": url, "error": str(e)}
            )
