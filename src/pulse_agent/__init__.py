"""Brief-to-artifact pipeline: signal sweep plus newsletter and blog drafting."""

__all__ = ["config", "models", "normalizer", "signals", "composer", "progress", "workflow"]
