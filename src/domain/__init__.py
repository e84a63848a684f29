"""Domain layer (pure logic).

- Keep economy rules, random primitives and item attribute generation here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis.
- Prefer deterministic functions (time/random passed in as arguments if needed).
"""
