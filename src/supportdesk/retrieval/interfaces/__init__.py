"""
Retrieval Interfaces Layer
==========================

API routes for the retrieval-answer engine.
"""

from supportdesk.retrieval.interfaces.controllers import retrieval_router

__all__ = ["retrieval_router"]
