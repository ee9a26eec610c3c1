"""Publishing orchestrator for the Central Portal deployment pipeline."""

__version__ = "0.3.0"
