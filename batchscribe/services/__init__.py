"""Concrete collaborators behind the protocols in ``interfaces``."""
