"""Checkpoint/resume orchestration core.

Provides:
- Settings loaded from .env
- Structured logging
- The continuation store, resource registry and run instantiator
- The execution orchestrator that drives one invocation
"""
