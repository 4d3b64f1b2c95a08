"""
API module - REST endpoints for the remiss network service
"""
from . import cooccurrence, network

__all__ = ["cooccurrence", "network"]
