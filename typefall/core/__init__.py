"""Falling-word engine: difficulty tables, spawner, fall simulation, matching, and the reducer.

Kept free of FastAPI and asyncio concerns so it can be driven by the session
controller, a CLI, or tests.
"""
