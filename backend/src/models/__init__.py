"""Data models for the backend service.

This package contains Pydantic models for request/response validation,
database rows, health reports and startup diagnostics.
"""
