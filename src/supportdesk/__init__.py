"""
Supportdesk
===========

Retrieval-answer engine and ticket auto-assignment for a multi-tenant
support widget.
"""

__version__ = "1.0.0"
