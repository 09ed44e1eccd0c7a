"""Reddit sentiment analysis backend."""

__version__ = "0.1.0"
