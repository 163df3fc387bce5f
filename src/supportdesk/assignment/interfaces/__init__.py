"""
Assignment Interfaces Layer
===========================

API routes for ticket auto-assignment.
"""

from supportdesk.assignment.interfaces.controllers import assignment_router

__all__ = ["assignment_router"]
