"""Routers package for the dashboard API endpoints"""
from . import dashboard, users

__all__ = [
	"dashboard",
	"users",
]
