# functions/firebase/__init__.py
"""Firestore, Storage and Auth access for the callable functions."""
