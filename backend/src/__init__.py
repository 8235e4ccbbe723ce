"""
DreamCut backend

Domains:
    - refiner: analyzer JSON → polished refiner JSON (Step 2a)
    - script: refined JSON → studio-grade script (Step 3)

Shared building blocks (config, LLM client, JSON repair, database, repositories) live in common.
"""
