"""
CORS Package
============

Cross-origin policy for the relay: origin admission, preflight answers and
access-control response headers.

Usage:
------
    from form_relay.cors import CorsPolicy, CorsStage
    stage = CorsStage(CorsPolicy.from_settings(settings))
"""

from .policy import ALLOWED_HEADERS, ALLOWED_METHODS, CorsPolicy, CorsStage

__all__ = ["ALLOWED_HEADERS", "ALLOWED_METHODS", "CorsPolicy", "CorsStage"]
