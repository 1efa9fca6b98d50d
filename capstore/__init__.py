"""capstore - self-hosted blob store with signed capability URLs."""

__version__ = "0.1.0"
