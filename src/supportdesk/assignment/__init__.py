"""
Assignment Module
=================

Bounded context choosing an owner for each escalated ticket.

Layers:
- domain: selection rules, results, tracking counters
- application: AssignmentService and the team/ticket store interface
- infrastructure: SQLAlchemy models and repository
- interfaces: FastAPI routes
"""
