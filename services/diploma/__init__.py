"""
Diploma Service
===============

Issues diploma documents to a content-addressed store and anchors their
content ids on a ledger contract.

This service provides:
- Diploma issuance (upload + issueDiploma / setHash)
- Retry of failed ledger writes without re-uploading
- Retrieval and rendering of the diploma currently on record

Version: 0.1.0
"""

__version__ = "0.1.0"
