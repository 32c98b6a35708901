"""Core signal logic: indicators, strategy evaluation and verification.

This package contains pure business logic with no I/O dependencies
(no database, Redis, or network access). The FastAPI service (app/)
supplies price data and persists the records it produces.
"""
