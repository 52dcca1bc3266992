"""
wortdrill: adaptive vocabulary drill.

Subpackages:
- learning: outcome ledger, weighted selection, vocabulary and sessions
- audio: pronunciation cache and fallback chain
- storage: durable key-value backends
"""

__version__ = "1.0.0"
