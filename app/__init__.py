"""
Web layer: FastAPI routes for the review screen.
"""
