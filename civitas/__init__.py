"""Civitas - city and citizen registry over a relational store."""

__version__ = "0.1"
