"""
Shared Kernel Module
====================

Shared infrastructure used across both bounded contexts (Retrieval and
Assignment).

Architecture Pattern: Modular Monolith
- Each module (retrieval, assignment) is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add retrieval or assignment business logic to the shared kernel.
"""

__version__ = "1.0.0"
