"""
Shared Infrastructure
=====================

Cross-cutting technical concerns used by both engines:
- Structured JSON logging
- Grafana OTLP metrics export
"""
