"""Learnboard interaction and moderation integrity backend."""
