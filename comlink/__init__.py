"""Causal-order multicast building blocks and durable key/value storage."""

__version__ = "0.1.0"