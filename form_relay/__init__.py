"""
Form Relay
==========

A single-endpoint HTTP relay that takes a multipart form from a browser,
optionally swaps in a server-held token, and forwards the fields to one fixed
upstream URL, returning the upstream's answer unchanged.

Package layout:
    - config   : environment-derived, frozen settings
    - pipeline : ordered edge stages run before the routes
    - cors     : origin admission and preflight answers
    - auth     : HTTP Basic Authentication gate
    - proxy    : the POST /proxy relay handler
    - main     : application factory and console entry point
"""

__version__ = "1.0.0"
