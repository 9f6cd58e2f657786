"""
mflow front ends
================

1. HTTP API (FastAPI):
   python -m mflow.nodes.server

2. Command-line workflow runner:
   python -m mflow.nodes.runner workflow.json
"""

__all__ = ['server', 'runner']
