"""Qorscend quantum code conversion API."""
