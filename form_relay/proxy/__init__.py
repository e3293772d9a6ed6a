"""
Proxy Package
=============

This package implements the relay endpoint that forwards browser forms to
the configured upstream and returns the upstream's answer unchanged.

Main Components:
----------------
- routes.py: FastAPI router with the POST /proxy endpoint
- forms.py: inbound field extraction and the token-injection rule

Usage:
------
    from form_relay.proxy import proxy_router
    app.include_router(proxy_router)
"""

from .routes import get_upstream_client, proxy_router

__all__ = ["get_upstream_client", "proxy_router"]
