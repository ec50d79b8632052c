"""
Processing service integration.

This package contains:
- processing_client: REST client for upload, status polling and report generation
"""
