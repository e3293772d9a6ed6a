"""
Authentication Package

HTTP Basic Authentication for the relay, checked against a single configured
username/password pair.

Modules:
- basic: header parsing, constant-time credential check, and the pipeline
  stage that issues the 401 challenge
"""

from .basic import BasicAuthGate, BasicAuthStage, parse_basic_credentials

__all__ = [
    "BasicAuthGate",
    "BasicAuthStage",
    "parse_basic_credentials",
]
