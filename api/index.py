"""
Serverless entry point for the Supportdesk API
"""
import os
import sys

# Make the src/ layout importable without installing the package
src_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")

from mangum import Mangum  # noqa: E402

from supportdesk.main import app  # noqa: E402

# Lambda handler for ASGI app; lifespan runs once per cold start
handler = Mangum(app, lifespan="auto")
