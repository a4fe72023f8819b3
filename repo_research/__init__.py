"""
Repo Research
=============

Collects evidence from local repositories, and optionally an external
docs service, to ground answers to questions about code.

Components:
- agents: Research controller, classifier, planner and evidence tools
- services: Scanner, search, worker pool, external evidence
- api: FastAPI endpoints
- models: Pydantic data models
- core: Configuration and dependencies
"""

__version__ = "1.0.0"
