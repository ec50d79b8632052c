"""
Core modules for the splitter client.

This package contains:
- config: Application configuration and settings
- exceptions: Custom exception classes
- logger: Logging configuration
- normalize: Line cleaning and amount extraction
- schema: Pydantic models for the data model and service payloads
"""
