"""
FastAPI application layer for the chart signal relay.

This module provides HTTP endpoints that accept a chart image upload, relay it
to a vision model, and return the extracted trading signal.
"""
