"""
Services Layer

Pure scheduling and bracket logic that:
- Accepts model snapshots (matches, pitches, divisions, standings)
- Returns models and typed result envelopes
- Does NOT perform I/O or persist anything
- Does NOT mutate data unless explicitly designed to (Scheduler)
"""
