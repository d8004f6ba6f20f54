"""Assembly Stage: live quorum and verifiable voting for neighborhood assemblies."""

__version__ = "0.1.0"
