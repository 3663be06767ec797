"""Adaptive arithmetic drill engine."""
