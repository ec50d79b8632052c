"""
Pydantic schemas for the review data model and the processing service payloads.
"""
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.exceptions import ValidationError
from core.logger import setup_logger

logger = setup_logger(__name__)


class PaymentMode(str, Enum):
    """Payment channels the processing service knows how to classify."""
    BDO = "BDO"
    CEBUANA = "CEBUANA"
    CHINABANK = "CHINABANK"
    ECPAY = "ECPAY"
    METROBANK = "METROBANK"
    UNIONBANK = "UNIONBANK"
    SM = "SM"
    PNB = "PNB"
    CIS = "CIS"


class Area(str, Enum):
    """Service areas a report can be generated for."""
    EPR = "EPR"
    PIC = "PIC"
    PWIC = "PWIC"
    PRIMEWATER = "PRIMEWATER"


class ClassificationSelection(BaseModel):
    """Selector values captured when an upload starts."""
    model_config = ConfigDict(frozen=True)
    
    payment_mode: PaymentMode
    area: Area
    
    @classmethod
    def from_values(
        cls,
        payment_mode: Optional[str],
        area: Optional[str]
    ) -> "ClassificationSelection":
        """
        Build a selection from raw selector values.
        
        Args:
            payment_mode: Selected payment mode (empty when unset)
            area: Selected area (empty when unset)
        
        Returns:
            Validated selection
        
        Raises:
            ValidationError: If a value is missing or unknown
        """
        if not payment_mode:
            raise ValidationError("Please select a payment mode first")
        if not area:
            raise ValidationError("Please select an area first")
        
        try:
            mode = PaymentMode(payment_mode)
        except ValueError:
            raise ValidationError(
                f"Unknown payment mode: {payment_mode}",
                details={"allowed": [m.value for m in PaymentMode]}
            )
        try:
            selected_area = Area(area)
        except ValueError:
            raise ValidationError(
                f"Unknown area: {area}",
                details={"allowed": [a.value for a in Area]}
            )
        return cls(payment_mode=mode, area=selected_area)


class Summary(BaseModel):
    """Authoritative totals reported by the processing service."""
    total_amount: Decimal = Decimal("0")
    total_transactions: int = 0
    
    @field_validator("total_amount", mode="before")
    @classmethod
    def coerce_total_amount(cls, v):
        """Totals are display-only; anything unparsable shows as zero."""
        if v is None or v == "":
            return Decimal("0")
        try:
            amount = Decimal(str(v).strip())
        except InvalidOperation:
            logger.warning(f"Unparsable summary total_amount {v!r}, displaying 0")
            return Decimal("0")
        if not amount.is_finite():
            logger.warning(f"Non-finite summary total_amount {v!r}, displaying 0")
            return Decimal("0")
        return amount
    
    @field_validator("total_transactions", mode="before")
    @classmethod
    def coerce_total_transactions(cls, v):
        """Unparsable counts show as zero."""
        if v is None or v == "":
            return 0
        try:
            return int(v)
        except (TypeError, ValueError, OverflowError):
            logger.warning(f"Unparsable summary total_transactions {v!r}, displaying 0")
            return 0


class UploadResponse(BaseModel):
    """Response of the upload endpoint."""
    processing_id: str
    
    @field_validator("processing_id", mode="before")
    @classmethod
    def normalize_processing_id(cls, v):
        """Processing ids are opaque; the service may send integers."""
        if v is None:
            return v
        return str(v)


class ProcessingStatus(BaseModel):
    """Response of the processing-status endpoint."""
    status: str
    processed_data: Optional[Dict[str, Any]] = None
    summary: Optional[Dict[str, Any]] = None
    raw_contents: Optional[List[Any]] = None
    separator: Optional[str] = None
    error: Optional[str] = None


class ProcessedResult(BaseModel):
    """Completed processing output, immutable for the life of a session."""
    model_config = ConfigDict(frozen=True)
    
    structured_data: Dict[str, Any] = Field(default_factory=dict)
    summary: Summary = Field(default_factory=Summary)
    raw_lines: Tuple[str, ...] = ()
    separator: str = ""
    
    @classmethod
    def from_status(cls, status: ProcessingStatus) -> "ProcessedResult":
        """
        Merge a completed status payload into one result.
        
        The summary is folded into the structured data under ``summary``
        so report generation receives it unchanged.
        """
        raw_summary = status.summary or {}
        structured = dict(status.processed_data or {})
        structured["summary"] = raw_summary
        raw_lines = tuple("" if line is None else str(line) for line in (status.raw_contents or []))
        return cls(
            structured_data=structured,
            summary=Summary.model_validate(raw_summary),
            raw_lines=raw_lines,
            separator=status.separator or "",
        )


class ReportRequest(BaseModel):
    """Body of the generate-report request."""
    processed_data: Dict[str, Any]
    raw_contents: List[str]
    separator: str
    original_filename: str
    area: str


class ReportArtifact(BaseModel):
    """Binary report returned by the processing service."""
    content: bytes
    content_disposition: Optional[str] = None
