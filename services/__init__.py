"""
Service layer for the review workflow.

This package contains the upload state machine, the debounced line
search, the report exporter and the review service that combines them.
"""
