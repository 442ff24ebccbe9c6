"""Quote pipeline: OCR, LLM analysis, policy-driven pricing and HITL routing."""

__version__ = "0.1.0"
