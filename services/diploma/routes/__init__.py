"""
Diploma Service Routes
======================

API route handlers for the diploma service.
"""

from services.diploma.routes import content, diplomas, registry


__all__ = ["content", "diplomas", "registry"]
