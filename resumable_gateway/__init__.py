"""Resumable SSE streaming gateway for token-generating completion APIs."""

__version__ = "0.1.0"
