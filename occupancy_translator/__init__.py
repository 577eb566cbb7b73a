"""
Occupancy Translator — Insurance Occupancy Code Suggestion Service
===================================================================
Hexagonal (Ports & Adapters) architecture.

Layer map
─────────────────────────────────────────────────────
  config/       All tuneable settings & prompt strings
  domain/       Pure business objects (models, exceptions) — no I/O
  ports/        Abstract interfaces (Python Protocols)
  adapters/     Concrete implementations of each Port (Gemini, Postgres…)
  services/     Retrieval, classification and feedback logic; depends only
                on Ports, never Adapters
  interfaces/   Delivery layer: FastAPI HTTP surface, CLI
  data/         Bundled master occupancy list and sample training corpus
  tests/        Full test suite: unit / integration / e2e

Swapping any external dependency (LLM, persistent store):
  1. Write a new adapter in adapters/ implementing the relevant Port
  2. Change the single wiring line in services/container.py
"""
__version__ = "1.0.0"
