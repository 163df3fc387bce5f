"""
Retrieval Module
================

Bounded context answering widget questions from a tenant's ingested content.

Layers:
- domain: search results, confidence scoring, escalation rules
- application: search / answer / RAG services and their collaborator interfaces
- infrastructure: pgvector chunk store, query log, LLM adapter
- interfaces: FastAPI routes
"""
