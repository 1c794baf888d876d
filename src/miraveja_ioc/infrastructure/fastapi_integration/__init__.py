"""
FastAPI integration module.

Provides helpers and utilities for integrating miraveja-ioc with FastAPI.
"""

from .integration import create_fastapi_dependency, inject_dependencies

__all__ = [
    "create_fastapi_dependency",
    "inject_dependencies",
]
