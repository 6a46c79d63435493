"""Bayesian pooled, unpooled and hierarchical models of song popularity."""

__version__ = "0.1.0"
